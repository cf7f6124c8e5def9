# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_wasm

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from coreason_wasm.models import ExecutionLimits


class CompilerConfig(BaseSettings):
    """
    Configuration for the build-and-run service.
    """

    # Toolchain discovery
    resources_path: Path | None = None
    emcc_path: str = "emcc"
    node_path: str | None = None
    version_probe_timeout_ms: int = 10_000
    force_mock: bool = False

    # Compilation
    max_source_kb: int = Field(default=100, gt=0)
    compile_timeout_ms: int = Field(default=30_000, gt=0)
    scratch_dir: Path | None = None

    # Execution budgets
    max_memory_mb: int = Field(default=64, gt=0)
    execution_timeout_ms: int = Field(default=5_000, gt=0)
    max_output_bytes: int = Field(default=1024 * 1024, gt=0)

    # Completion detection inside the wrapper
    quiescence_ms: int = Field(default=200, gt=0)
    poll_interval_ms: int = Field(default=50, gt=0)
    wrapper_fallback_ms: int = Field(default=2_000, gt=0)
    kill_grace_ms: int = 500

    # Mock runner
    mock_compile_delay_ms: int = 300
    mock_execute_delay_ms: int = 150

    model_config = SettingsConfigDict(
        env_prefix="COREASON_WASM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def execution_limits(self) -> ExecutionLimits:
        return ExecutionLimits(
            max_memory_mb=self.max_memory_mb,
            max_execution_time_ms=self.execution_timeout_ms,
            max_output_bytes=self.max_output_bytes,
        )
