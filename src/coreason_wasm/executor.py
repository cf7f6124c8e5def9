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
import json
import os
import shutil
import tempfile
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiofiles  # type: ignore[import-untyped]
import anyio
from loguru import logger

from coreason_wasm.build import EXPORT_NAME
from coreason_wasm.config import CompilerConfig
from coreason_wasm.models import (
    EXIT_CODE_ERROR,
    EXIT_CODE_TIMEOUT,
    ExecutionLimits,
    ExecutionOutcome,
    ToolchainDescriptor,
    WasmArtifact,
    WrapperConfig,
)
from coreason_wasm.utils.process import elapsed_ms, terminate

if TYPE_CHECKING:
    from loguru import Logger

WRAPPER_SCRIPT = Path(__file__).resolve().parent / "resources" / "wasm_runner.js"
TRUNCATION_MARKER = "\n[output truncated]"
TIMEOUT_MARKER = "Error: execution time limit exceeded"
READ_CHUNK = 65536


class _BoundedText:
    """Accumulates text up to a byte ceiling, remembering whether anything was dropped."""

    def __init__(self, limit: int):
        self.limit = limit
        self.size = 0
        self.truncated = False
        self._parts: list[str] = []

    def add(self, text: str) -> None:
        if self.truncated:
            return
        encoded = text.encode("utf-8")
        room = self.limit - self.size
        if len(encoded) > room:
            self._parts.append(encoded[:room].decode("utf-8", errors="ignore"))
            self.size = self.limit
            self.truncated = True
            return
        self._parts.append(text)
        self.size += len(encoded)

    def text(self) -> str:
        joined = "".join(self._parts)
        return joined + TRUNCATION_MARKER if self.truncated else joined


class _Capture:
    """Collects the wrapper's event stream."""

    def __init__(self, limit: int):
        self.stdout = _BoundedText(limit)
        self.stderr = _BoundedText(limit)
        self.exit_event: dict[str, Any] | None = None

    def handle_line(self, raw: bytes) -> None:
        if not raw.strip():
            return
        try:
            event = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            event = None
        if not isinstance(event, dict):
            # Anything that is not an event came from node itself.
            self.stderr.add(raw.decode("utf-8", errors="replace") + "\n")
            return

        kind = event.get("type")
        if kind == "stdout":
            self.stdout.add(str(event.get("data", "")))
        elif kind == "stderr":
            self.stderr.add(str(event.get("data", "")))
        elif kind == "exit" and self.exit_event is None:
            self.exit_event = event


class RunSandbox:
    """Executes compiled modules in a fresh Node.js process per run.

    The process runs a fixed wrapper script that loads the module's JavaScript loader,
    feeds it the supplied stdin and streams captured output back as JSON lines. The
    outer execution budget kills the process if it is still running; in that case the
    outcome is marked terminated with exit code 124 and keeps whatever output arrived.
    """

    def __init__(
        self,
        limits: ExecutionLimits | None = None,
        descriptor: ToolchainDescriptor | None = None,
        config: CompilerConfig | None = None,
        log: "Logger | None" = None,
    ):
        """Initializes the RunSandbox.

        Args:
            limits: Budgets applied to every execution. Taken from config when omitted.
            descriptor: Toolchain whose node runtime and environment are used.
            config: Service configuration (wrapper timing constants).
            log: Logger to report through.
        """
        self.config = config or CompilerConfig()
        self.limits = limits or self.config.execution_limits()
        self.descriptor = descriptor
        self._log = log or logger.bind(component="sandbox")

    @property
    def node_command(self) -> str:
        if self.descriptor and self.descriptor.node_path:
            return str(self.descriptor.node_path)
        if self.config.node_path:
            return self.config.node_path
        return shutil.which("node") or "node"

    async def execute(self, artifact: WasmArtifact, stdin: str = "") -> ExecutionOutcome:
        """Run a compiled artifact.

        Args:
            artifact: The artifact produced by BuildService.
            stdin: Text supplied to the program's standard input.

        Returns:
            ExecutionOutcome: Captured streams, exit code and timing.
        """
        start = time.monotonic()

        if len(stdin.encode("utf-8")) > self.limits.max_output_bytes:
            return ExecutionOutcome.error(
                f"Input is too large (limit {self.limits.max_output_bytes} bytes)", elapsed_ms(start)
            )

        if artifact.loader_path is None or artifact.wasm_path is None:
            return ExecutionOutcome.error("Artifact has no module files on disk", elapsed_ms(start))

        loader_path = Path(artifact.loader_path)
        wasm_exists = Path(artifact.wasm_path).is_file()
        loader_exists = loader_path.is_file()
        if not wasm_exists or not loader_exists:
            message = f"Module files not found - wasm: {wasm_exists}, js: {loader_exists}"
            self._log.error(message)
            return ExecutionOutcome.error(message, elapsed_ms(start))

        rundir = Path(tempfile.mkdtemp(prefix="wasm-run-"))
        try:
            config_path = rundir / "wrapper.json"
            wrapper_config = WrapperConfig(
                loader_path=str(loader_path.resolve()),
                export_name=EXPORT_NAME,
                stdin=stdin,
                quiescence_ms=self.config.quiescence_ms,
                poll_interval_ms=self.config.poll_interval_ms,
                fallback_ms=self.config.wrapper_fallback_ms,
            )
            async with aiofiles.open(config_path, "w", encoding="utf-8") as f:
                await f.write(wrapper_config.model_dump_json())

            return await self._run(config_path, loader_path.parent, start)
        finally:
            await anyio.to_thread.run_sync(lambda: shutil.rmtree(rundir, ignore_errors=True))

    def build_command(self, config_path: Path) -> list[str]:
        return [
            self.node_command,
            f"--max-old-space-size={self.limits.max_memory_mb}",
            str(WRAPPER_SCRIPT),
            str(config_path),
        ]

    async def _run(self, config_path: Path, cwd: Path, start: float) -> ExecutionOutcome:
        cmd = self.build_command(config_path)
        env = dict(os.environ)
        if self.descriptor is not None:
            env.update(self.descriptor.environment())

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(cwd),
                env=env,
                start_new_session=True,
            )
        except OSError as e:
            self._log.error(f"Failed to start {cmd[0]}: {e}")
            return ExecutionOutcome.error(f"Failed to start the WebAssembly runtime ({cmd[0]}): {e}", elapsed_ms(start))

        capture = _Capture(self.limits.max_output_bytes)
        assert proc.stdout is not None and proc.stderr is not None
        waiter = asyncio.gather(
            self._pump_events(proc.stdout, capture),
            self._pump_stderr(proc.stderr, capture),
            proc.wait(),
        )

        try:
            await asyncio.wait_for(waiter, timeout=self.limits.max_execution_time_ms / 1000)
        except asyncio.TimeoutError:
            self._log.warning(
                f"Execution exceeded {self.limits.max_execution_time_ms} ms; terminating process {proc.pid}"
            )
            await terminate(proc, self.config.kill_grace_ms / 1000)
            return ExecutionOutcome(
                stdout=capture.stdout.text(),
                stderr=f"{capture.stderr.text()}\n{TIMEOUT_MARKER}",
                exit_code=EXIT_CODE_TIMEOUT,
                execution_time_ms=elapsed_ms(start),
                terminated=True,
            )

        return self._outcome(capture, proc.returncode, start)

    def _outcome(self, capture: _Capture, returncode: int | None, start: float) -> ExecutionOutcome:
        event = capture.exit_event
        memory_kb = 0
        if event is not None:
            reason = str(event.get("reason", "exit"))
            exit_code = int(event.get("code", 0))
            memory_kb = int(event.get("memory_kb", 0))
        else:
            reason = "process-exit"
            exit_code = returncode if returncode is not None else EXIT_CODE_ERROR

        stderr = capture.stderr.text()
        terminated = reason == "fallback"
        if terminated:
            exit_code = EXIT_CODE_TIMEOUT
            stderr = f"{stderr}\n{TIMEOUT_MARKER}"

        self._log.info(f"Execution finished: exit code {exit_code} ({reason})")
        return ExecutionOutcome(
            stdout=capture.stdout.text(),
            stderr=stderr,
            exit_code=exit_code,
            execution_time_ms=elapsed_ms(start),
            memory_usage_kb=memory_kb,
            terminated=terminated,
        )

    async def _pump_events(self, stream: asyncio.StreamReader, capture: _Capture) -> None:
        line_limit = max(READ_CHUNK, self.limits.max_output_bytes * 8)
        buffer = b""
        discarding = False
        while True:
            chunk = await stream.read(READ_CHUNK)
            if not chunk:
                break
            buffer += chunk
            *lines, buffer = buffer.split(b"\n")
            for line in lines:
                if discarding:
                    # Tail of an oversized event.
                    discarding = False
                    continue
                capture.handle_line(line)
            if len(buffer) > line_limit:
                capture.stdout.truncated = True
                buffer = b""
                discarding = True
        if buffer and not discarding:
            capture.handle_line(buffer)

    async def _pump_stderr(self, stream: asyncio.StreamReader, capture: _Capture) -> None:
        while True:
            chunk = await stream.read(READ_CHUNK)
            if not chunk:
                break
            capture.stderr.add(chunk.decode("utf-8", errors="replace"))
