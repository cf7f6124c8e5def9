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
import itertools
import os
import shutil
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING
from uuid import uuid4

import aiofiles  # type: ignore[import-untyped]
import anyio
from loguru import logger

from coreason_wasm.config import CompilerConfig
from coreason_wasm.errors import SourceValidationError, ToolchainUnavailableError
from coreason_wasm.models import CompileOptions, CompileOutcome, ToolchainDescriptor, WasmArtifact
from coreason_wasm.utils.process import command_line, elapsed_ms, terminate
from coreason_wasm.validation import SourceValidator

if TYPE_CHECKING:
    from loguru import Logger

EXPORT_NAME = "EmscriptenModule"
READ_CHUNK = 65536

TARGET_FLAGS: tuple[str, ...] = (
    "-sWASM=1",
    "-sEXPORTED_RUNTIME_METHODS=[]",
    "-sALLOW_MEMORY_GROWTH=1",
    "-sMODULARIZE=1",
    f"-sEXPORT_NAME={EXPORT_NAME}",
    "-sENVIRONMENT=node",
    '-sEXPORTED_FUNCTIONS=["_main"]',
    "-sFILESYSTEM=1",
    "-sDISABLE_EXCEPTION_CATCHING=0",
    "-sNODEJS_CATCH_EXIT=0",
    # Flushes stdio and calls onExit with the real status when main returns.
    "-sEXIT_RUNTIME=1",
    "-sFORCE_FILESYSTEM=1",
    "-sINVOKE_RUN=1",
    "-lstdc++",
)


@dataclass
class _CompilerRun:
    stdout: str
    stderr: str
    returncode: int | None


async def _drain(stream: asyncio.StreamReader, sink: bytearray) -> None:
    while True:
        chunk = await stream.read(READ_CHUNK)
        if not chunk:
            break
        sink.extend(chunk)


class BuildService:
    """Compiles C++ sources to WebAssembly with emcc.

    Every compile gets its own scratch directory. Failed compiles remove it immediately;
    successful ones keep it so the artifact survives until it is executed, released or
    the service is cleaned up.
    """

    def __init__(
        self,
        descriptor: ToolchainDescriptor,
        config: CompilerConfig | None = None,
        validator: SourceValidator | None = None,
        log: "Logger | None" = None,
    ):
        """Initializes the BuildService.

        Args:
            descriptor: The toolchain to compile with.
            config: Service configuration.
            validator: Source pre-checks. Built from config when omitted.
            log: Logger to report through.

        Raises:
            ToolchainUnavailableError: If the descriptor has no usable compiler.
        """
        if not descriptor.available or descriptor.compiler_path is None:
            raise ToolchainUnavailableError("BuildService requires an available toolchain")

        self.descriptor = descriptor
        self.config = config or CompilerConfig()
        self.validator = validator or SourceValidator(max_source_kb=self.config.max_source_kb)
        self._log = log or logger.bind(component="build")
        self._scratch_root: Path | None = None
        self._counter = itertools.count(1)
        self._retained: set[Path] = set()

    @property
    def scratch_root(self) -> Path | None:
        return self._scratch_root

    @property
    def retained(self) -> frozenset[Path]:
        return frozenset(self._retained)

    def build_args(self, source_path: Path, loader_path: Path, options: CompileOptions) -> list[str]:
        """Assemble the emcc command line for one compile."""
        args = [str(self.descriptor.compiler_path), str(source_path), "-o", str(loader_path)]
        args.extend(options.compiler_flags())
        args.extend(TARGET_FLAGS)
        args.extend(f"-I{include}" for include in options.includes)
        args.extend(f"-l{library}" for library in options.libraries)
        return args

    async def compile(self, source: str, options: CompileOptions | None = None) -> CompileOutcome:
        """Compile a C++ source string into a WebAssembly artifact.

        Args:
            source: The C++ program.
            options: Compiler options. Defaults to CompileOptions().

        Returns:
            CompileOutcome: success with an artifact, or the compiler's diagnostics.
        """
        options = options or CompileOptions()
        start = time.monotonic()

        try:
            self.validator.validate(source)
        except SourceValidationError as e:
            self._log.info(f"Rejected source before compilation: {e}")
            return CompileOutcome.failure(str(e), elapsed_ms(start))

        workdir = self._new_scratch_dir()
        source_path = workdir / "program.cpp"
        loader_path = workdir / "program.js"
        wasm_path = workdir / "program.wasm"

        outcome: CompileOutcome | None = None
        try:
            async with aiofiles.open(source_path, "w", encoding="utf-8") as f:
                await f.write(source)

            args = self.build_args(source_path, loader_path, options)
            self._log.debug(f"Compiling {source_path} with {' '.join(args[1:])}")
            run = await self._run_compiler(args, workdir)
            outcome = await self._classify(run, wasm_path, loader_path, start)
            return outcome
        finally:
            if outcome is not None and outcome.success:
                self._retained.add(workdir)
            else:
                await anyio.to_thread.run_sync(lambda: shutil.rmtree(workdir, ignore_errors=True))

    async def release(self, artifact: WasmArtifact) -> None:
        """Delete the scratch directory holding an artifact produced by this service."""
        if artifact.wasm_path is None:
            return
        workdir = Path(artifact.wasm_path).parent
        if workdir in self._retained:
            self._retained.discard(workdir)
            await anyio.to_thread.run_sync(lambda: shutil.rmtree(workdir, ignore_errors=True))

    async def cleanup(self) -> None:
        """Remove every scratch directory this service created."""
        root = self._scratch_root
        self._retained.clear()
        self._scratch_root = None
        if root is not None:
            self._log.info(f"Removing compiler scratch directory {root}")
            await anyio.to_thread.run_sync(lambda: shutil.rmtree(root, ignore_errors=True))

    def _new_scratch_dir(self) -> Path:
        if self._scratch_root is None:
            parent = self.config.scratch_dir
            if parent is not None:
                Path(parent).mkdir(parents=True, exist_ok=True)
            self._scratch_root = Path(tempfile.mkdtemp(prefix="cpp-wasm-", dir=parent))

        workdir = self._scratch_root / f"{next(self._counter):06d}-{uuid4().hex[:8]}"
        workdir.mkdir()
        return workdir

    async def _run_compiler(self, args: list[str], workdir: Path) -> _CompilerRun:
        env = {**os.environ, **self.descriptor.environment()}
        timeout = self.config.compile_timeout_ms / 1000

        try:
            proc = await asyncio.create_subprocess_exec(
                *command_line(args, self.descriptor.platform),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
                cwd=str(workdir),
                start_new_session=True,
            )
        except OSError as e:
            self._log.error(f"Failed to start compiler {args[0]}: {e}")
            return _CompilerRun(stdout="", stderr=f"Failed to start compiler {args[0]}: {e}", returncode=None)

        stdout_bytes = bytearray()
        stderr_bytes = bytearray()
        waiter = asyncio.gather(
            _drain(proc.stdout, stdout_bytes),
            _drain(proc.stderr, stderr_bytes),
            proc.wait(),
        )

        try:
            await asyncio.wait_for(waiter, timeout=timeout)
        except asyncio.TimeoutError:
            self._log.warning(f"Compilation exceeded {self.config.compile_timeout_ms} ms; terminating emcc")
            await terminate(proc, self.config.kill_grace_ms / 1000)
            partial = stderr_bytes.decode("utf-8", errors="replace").strip()
            limit = f"Compilation exceeded the {self.config.compile_timeout_ms} ms time limit"
            return _CompilerRun(
                stdout=stdout_bytes.decode("utf-8", errors="replace"),
                stderr=f"{partial}\n{limit}" if partial else limit,
                returncode=None,
            )

        return _CompilerRun(
            stdout=stdout_bytes.decode("utf-8", errors="replace"),
            stderr=stderr_bytes.decode("utf-8", errors="replace"),
            returncode=proc.returncode,
        )

    async def _classify(
        self, run: _CompilerRun, wasm_path: Path, loader_path: Path, start: float
    ) -> CompileOutcome:
        if run.returncode != 0:
            self._log.info(f"Compilation failed (exit code {run.returncode})")
            return CompileOutcome.failure(
                run.stderr.strip() or "Compilation failed",
                elapsed_ms(start),
                warnings=run.stdout.strip() or None,
            )

        wasm_exists = wasm_path.is_file()
        loader_exists = loader_path.is_file()
        if not wasm_exists or not loader_exists:
            self._log.error(f"Compiler output missing - wasm: {wasm_exists}, js: {loader_exists}")
            return CompileOutcome.failure(
                f"Compiler did not produce the expected output files (wasm: {wasm_exists}, js: {loader_exists})",
                elapsed_ms(start),
            )

        async with aiofiles.open(wasm_path, "rb") as f:
            content = await f.read()

        artifact = WasmArtifact(
            wasm_binary=base64.b64encode(content).decode("utf-8"),
            wasm_path=wasm_path,
            loader_path=loader_path,
        )
        self._log.info(f"Compiled {wasm_path} ({len(content)} bytes)")
        return CompileOutcome(
            success=True,
            artifact=artifact,
            warnings=run.stderr.strip() or None,
            compile_time_ms=elapsed_ms(start),
        )
