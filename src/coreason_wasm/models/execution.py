# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_wasm

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Same code coreutils `timeout` uses.
EXIT_CODE_TIMEOUT = 124
EXIT_CODE_ERROR = -1


class ExecutionLimits(BaseModel):
    """Budgets applied to every execution.

    Attributes:
        max_memory_mb: Coarse memory cap handed to the host runtime.
        max_execution_time_ms: Wall-clock budget before the process is killed.
        max_output_bytes: Ceiling for captured stdout, also applied to stdin.
    """

    model_config = ConfigDict(frozen=True)

    max_memory_mb: int = Field(default=64, gt=0)
    max_execution_time_ms: int = Field(default=5000, gt=0)
    max_output_bytes: int = Field(default=1024 * 1024, gt=0)


class ExecutionOutcome(BaseModel):
    """Represents the result of running a compiled module.

    Attributes:
        stdout: Standard output captured from the program.
        stderr: Standard error captured from the program, plus runner diagnostics.
        exit_code: Program exit code, EXIT_CODE_TIMEOUT when a budget expired,
            EXIT_CODE_ERROR when the run could not be started.
        execution_time_ms: Wall-clock duration of the run.
        memory_usage_kb: Estimated peak memory. Observability only.
        terminated: True when a budget forced the run to stop.
    """

    model_config = ConfigDict(frozen=True)

    stdout: str
    stderr: str
    exit_code: int
    execution_time_ms: int
    memory_usage_kb: int = 0
    terminated: bool = False

    @model_validator(mode="after")
    def _terminated_uses_timeout_code(self) -> "ExecutionOutcome":
        if self.terminated and self.exit_code != EXIT_CODE_TIMEOUT:
            raise ValueError(f"A terminated run must report exit code {EXIT_CODE_TIMEOUT}")
        return self

    @classmethod
    def error(cls, message: str, execution_time_ms: int = 0, stdout: str = "") -> "ExecutionOutcome":
        return cls(stdout=stdout, stderr=message, exit_code=EXIT_CODE_ERROR, execution_time_ms=execution_time_ms)


class WrapperConfig(BaseModel):
    """Configuration read by the Node.js wrapper (resources/wasm_runner.js)."""

    loader_path: str
    export_name: str = "EmscriptenModule"
    stdin: str = ""
    quiescence_ms: int = 200
    poll_interval_ms: int = 50
    fallback_ms: int = 2000
