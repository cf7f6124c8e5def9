import asyncio
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from coreason_wasm.config import CompilerConfig
from coreason_wasm.models import ToolchainDescriptor, WasmArtifact
from coreason_wasm.runners.mock import WASM_HEADER


@pytest.fixture
def config(tmp_path: Path) -> CompilerConfig:
    return CompilerConfig(
        scratch_dir=tmp_path / "scratch",
        mock_compile_delay_ms=10,
        mock_execute_delay_ms=10,
        kill_grace_ms=100,
    )


@pytest.fixture
def descriptor(tmp_path: Path) -> ToolchainDescriptor:
    return ToolchainDescriptor(
        platform="linux",
        arch="x64",
        compiler_path=tmp_path / "emsdk" / "emcc",
        runtime_root=tmp_path / "emsdk",
        node_path=None,
        available=True,
        version="3.1.50",
        source="system",
    )


@pytest.fixture
def artifact(tmp_path: Path) -> WasmArtifact:
    build_dir = tmp_path / "build"
    build_dir.mkdir()
    wasm = build_dir / "program.wasm"
    loader = build_dir / "program.js"
    wasm.write_bytes(WASM_HEADER)
    loader.write_text("module.exports = function () {};\n")
    return WasmArtifact(wasm_binary="AGFzbQEAAAA=", wasm_path=wasm, loader_path=loader)


@pytest.fixture
def fake_emcc() -> Callable[..., Any]:
    return _fake_emcc


@pytest.fixture
def fake_wrapper_process() -> Callable[..., MagicMock]:
    return _fake_wrapper_process


def _fake_emcc(
    returncode: int = 0,
    stdout: bytes = b"",
    stderr: bytes = b"",
    produce: bool = True,
) -> Callable[..., Any]:
    """Stand-in for asyncio.create_subprocess_exec that behaves like emcc."""

    async def spawn(*args: str, **kwargs: Any) -> Any:
        if produce and returncode == 0:
            loader = Path(args[list(args).index("-o") + 1])
            loader.write_text("module.exports = function () {};\n")
            loader.with_suffix(".wasm").write_bytes(WASM_HEADER)
        proc = MagicMock()
        proc.pid = 4242
        proc.returncode = returncode
        proc.stdout = _event_stream([stdout] if stdout else [])
        proc.stderr = _event_stream([stderr] if stderr else [])
        proc.wait = AsyncMock(return_value=returncode)
        return proc

    return spawn


def _event_stream(lines: list[bytes], eof: bool = True) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    for line in lines:
        reader.feed_data(line)
    if eof:
        reader.feed_eof()
    return reader


def _fake_wrapper_process(
    stdout_lines: list[bytes],
    stderr: bytes = b"",
    returncode: int = 0,
    hang: bool = False,
) -> MagicMock:
    """A process whose stdout carries wrapper events. With hang=True it never exits."""
    proc = MagicMock()
    proc.pid = 4243
    proc.stdout = _event_stream(stdout_lines, eof=not hang)
    proc.stderr = _event_stream([stderr] if stderr else [], eof=not hang)

    if hang:
        proc.returncode = None
        never = asyncio.Event()

        async def wait() -> int:
            await never.wait()
            return 0  # pragma: no cover

        proc.wait = wait
    else:
        proc.returncode = returncode
        proc.wait = AsyncMock(return_value=returncode)
    return proc
