# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_wasm

from typing import TYPE_CHECKING

from loguru import logger

from coreason_wasm.build import BuildService
from coreason_wasm.config import CompilerConfig
from coreason_wasm.executor import RunSandbox
from coreason_wasm.models import CompileOptions, CompileOutcome, ExecutionOutcome, ToolchainDescriptor, WasmArtifact
from coreason_wasm.runner import BuildRunner
from coreason_wasm.validation import SourceValidator

if TYPE_CHECKING:
    from loguru import Logger


class EmscriptenRunner(BuildRunner):
    """
    Emscripten-based implementation of the BuildRunner.
    """

    def __init__(
        self,
        descriptor: ToolchainDescriptor,
        config: CompilerConfig | None = None,
        validator: SourceValidator | None = None,
        log: "Logger | None" = None,
    ):
        self.config = config or CompilerConfig()
        self._log = log or logger
        self.descriptor = descriptor
        self.build = BuildService(
            descriptor,
            config=self.config,
            validator=validator,
            log=self._log.bind(component="build"),
        )
        self.sandbox = RunSandbox(
            limits=self.config.execution_limits(),
            descriptor=descriptor,
            config=self.config,
            log=self._log.bind(component="sandbox"),
        )

    async def compile(self, source: str, options: CompileOptions) -> CompileOutcome:
        return await self.build.compile(source, options)

    async def execute(self, artifact: WasmArtifact, stdin: str) -> ExecutionOutcome:
        if artifact.mock:
            return ExecutionOutcome.error("Mock artifacts cannot be executed by the Emscripten runner")
        return await self.sandbox.execute(artifact, stdin)

    async def cleanup(self) -> None:
        await self.build.cleanup()
