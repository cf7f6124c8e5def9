# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_wasm

import asyncio
import base64
import time
from typing import TYPE_CHECKING

from loguru import logger

from coreason_wasm.config import CompilerConfig
from coreason_wasm.models import CompileOptions, CompileOutcome, ExecutionOutcome, WasmArtifact
from coreason_wasm.runner import BuildRunner
from coreason_wasm.utils.process import elapsed_ms
from coreason_wasm.validation import SourceValidator

if TYPE_CHECKING:
    from loguru import Logger

# "\0asm" followed by binary format version 1.
WASM_HEADER = bytes([0x00, 0x61, 0x73, 0x6D, 0x01, 0x00, 0x00, 0x00])
MOCK_NOTICE = "Note: this is a mock execution; no WebAssembly module was run.\n"
MOCK_MEMORY_KB = 512


class MockRunner(BuildRunner):
    """Deterministic stand-in used when no toolchain is installed.

    Applies the same source validation as the real runner, then answers with a canned
    artifact (a bare WebAssembly header) and canned output that echoes stdin, each after
    a fixed delay so callers see realistic timing.
    """

    def __init__(
        self,
        config: CompilerConfig | None = None,
        validator: SourceValidator | None = None,
        log: "Logger | None" = None,
    ):
        self.config = config or CompilerConfig()
        self.validator = validator or SourceValidator(max_source_kb=self.config.max_source_kb)
        self._log = log or logger.bind(component="mock")

    async def compile(self, source: str, options: CompileOptions) -> CompileOutcome:
        start = time.monotonic()
        error = self.validator.check(source)
        if error is not None:
            return CompileOutcome.failure(str(error), elapsed_ms(start))

        if "syntax_error" in source:
            return CompileOutcome.failure("error: syntax error detected", elapsed_ms(start))

        self._log.info("Toolchain unavailable: answering compile request with a mock artifact")
        await asyncio.sleep(self.config.mock_compile_delay_ms / 1000)

        warnings = None
        if options.warnings:
            warnings = "warning: compiled by the mock runner; no compiler diagnostics available"
        return CompileOutcome(
            success=True,
            artifact=WasmArtifact(wasm_binary=base64.b64encode(WASM_HEADER).decode("utf-8"), mock=True),
            warnings=warnings,
            compile_time_ms=elapsed_ms(start),
        )

    async def execute(self, artifact: WasmArtifact, stdin: str) -> ExecutionOutcome:
        start = time.monotonic()
        limit = self.config.max_output_bytes
        if len(stdin.encode("utf-8")) > limit:
            return ExecutionOutcome.error(f"Input is too large (limit {limit} bytes)", elapsed_ms(start))

        await asyncio.sleep(self.config.mock_execute_delay_ms / 1000)

        output = "Hello, World!\n"
        if stdin.strip():
            output += f"Input: {stdin.strip()}\n"
        output += MOCK_NOTICE

        return ExecutionOutcome(
            stdout=output,
            stderr="",
            exit_code=0,
            execution_time_ms=elapsed_ms(start),
            memory_usage_kb=MOCK_MEMORY_KB,
            terminated=False,
        )

    async def cleanup(self) -> None:
        pass
