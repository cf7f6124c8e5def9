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
from typing import TYPE_CHECKING

import anyio
from loguru import logger

from coreason_wasm.config import CompilerConfig
from coreason_wasm.factory import RunnerFactory
from coreason_wasm.models import (
    AvailabilityReport,
    CleanupReport,
    CompileOptions,
    CompileOutcome,
    ExecutionOutcome,
    WasmArtifact,
)
from coreason_wasm.runner import BuildRunner
from coreason_wasm.toolchain import ToolchainLocator

if TYPE_CHECKING:
    from loguru import Logger


class CompilerServiceAsync:
    """Async-native compile-and-run gateway (The Core).

    Locates the toolchain once, picks the real or mock runner once, and turns every
    outcome (including unexpected failures) into a result value. Callers never see an
    exception from compile(), execute() or cleanup().
    """

    def __init__(
        self,
        config: CompilerConfig | None = None,
        locator: ToolchainLocator | None = None,
        log: "Logger | None" = None,
    ):
        """Initializes the CompilerServiceAsync.

        Args:
            config: Configuration for the service.
            locator: Toolchain locator. Built from config when omitted.
            log: Logger handed down to every component.
        """
        self.config = config or CompilerConfig()
        self._log = log or logger
        self.locator = locator or ToolchainLocator(self.config, log=self._log.bind(component="toolchain"))
        self.runner: BuildRunner | None = None
        self._runner_lock = asyncio.Lock()

    async def __aenter__(self) -> "CompilerServiceAsync":
        """Discovers the toolchain and selects the runner."""
        await self.check_availability()
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        """Releases temporary files and resets the service."""
        await self.cleanup()

    async def _ensure_runner(self) -> BuildRunner:
        if self.runner is not None:
            return self.runner

        async with self._runner_lock:
            # Double-check inside lock
            if self.runner is None:
                descriptor = await anyio.to_thread.run_sync(self.locator.locate)
                self.runner = RunnerFactory.get_runner(self.config, descriptor, log=self._log)
            return self.runner

    async def check_availability(self) -> AvailabilityReport:
        """Reports whether a real toolchain will serve compile requests.

        Discovery runs once; repeated calls reuse the cached result until cleanup().

        Returns:
            AvailabilityReport: Availability, bundled flag, version and discovery errors.
        """
        try:
            await self._ensure_runner()
            descriptor = await anyio.to_thread.run_sync(self.locator.locate)
        except Exception as e:
            self._log.exception("Availability check failed")
            return AvailabilityReport(
                available=False,
                using_bundled_toolchain=False,
                errors=[f"Availability check failed: {e}"],
            )

        available = descriptor.available and not self.config.force_mock
        errors = list(descriptor.errors)
        if not available and not errors:
            errors.append("Emscripten SDK not available")

        return AvailabilityReport(
            available=available,
            using_bundled_toolchain=available and descriptor.bundled,
            version=descriptor.version,
            errors=errors,
        )

    async def compile(self, source: str, options: CompileOptions | None = None) -> CompileOutcome:
        """Compiles C++ source code.

        Args:
            source: The C++ program.
            options: Compiler options (default: c++17, O0, warnings and debug info on).

        Returns:
            CompileOutcome: The result of the compilation.
        """
        self._log.info(f"Compile request ({len(source)} chars)")
        try:
            runner = await self._ensure_runner()
            return await runner.compile(source, options or CompileOptions())
        except Exception as e:
            self._log.exception("Compile request failed")
            return CompileOutcome.failure(f"Compilation error: {e}")

    async def execute(self, artifact: WasmArtifact, stdin: str = "") -> ExecutionOutcome:
        """Executes a previously compiled artifact.

        Args:
            artifact: The artifact from a successful compile().
            stdin: Text supplied to the program's standard input.

        Returns:
            ExecutionOutcome: The result of the execution.
        """
        self._log.info(f"Execute request ({len(stdin)} chars of input)")
        try:
            runner = await self._ensure_runner()
            return await runner.execute(artifact, stdin)
        except Exception as e:
            self._log.exception("Execute request failed")
            return ExecutionOutcome.error(f"Execution error: {e}")

    async def cleanup(self) -> CleanupReport:
        """Tears down the active runner and clears the toolchain cache.

        The service can be used again afterwards; the next request re-runs discovery.

        Returns:
            CleanupReport: Whether cleanup completed.
        """
        runner, self.runner = self.runner, None
        try:
            if runner is not None:
                await runner.cleanup()
        except Exception as e:
            self._log.error(f"Cleanup failed: {e}")
            return CleanupReport(success=False, error=f"Cleanup error: {e}")
        finally:
            self.locator.clear_cache()
        return CleanupReport(success=True)


class CompilerService:
    """Sync Facade for CompilerServiceAsync (The Facade).

    Wraps CompilerServiceAsync and executes methods via anyio.run.
    """

    def __init__(
        self,
        config: CompilerConfig | None = None,
        locator: ToolchainLocator | None = None,
        log: "Logger | None" = None,
    ):
        self._async = CompilerServiceAsync(config, locator, log)

    def __enter__(self) -> "CompilerService":
        anyio.run(self._async.__aenter__)
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        anyio.run(self._async.__aexit__, exc_type, exc_val, exc_tb)

    def check_availability(self) -> AvailabilityReport:
        return anyio.run(self._async.check_availability)

    def compile(self, source: str, options: CompileOptions | None = None) -> CompileOutcome:
        return anyio.run(self._async.compile, source, options)

    def execute(self, artifact: WasmArtifact, stdin: str = "") -> ExecutionOutcome:
        return anyio.run(self._async.execute, artifact, stdin)

    def cleanup(self) -> CleanupReport:
        return anyio.run(self._async.cleanup)
