"""End-to-end runs against a real Emscripten toolchain and Node.js."""

import shutil
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from coreason_wasm.config import CompilerConfig
from coreason_wasm.models import EXIT_CODE_TIMEOUT, CompileOptions
from coreason_wasm.runners import EmscriptenRunner
from coreason_wasm.service import CompilerServiceAsync

pytestmark = [
    pytest.mark.live,
    pytest.mark.skipif(
        shutil.which("emcc") is None or shutil.which("node") is None, reason="emcc and node are required"
    ),
]

HELLO = '#include <iostream>\nint main(){std::cout<<"hi";}'

ECHO = """
#include <iostream>
#include <string>
int main() {
    std::string line;
    std::getline(std::cin, line);
    std::cout << "Input: " << line << std::endl;
    return 0;
}
"""

EXIT_CODE = '#include <cstdio>\nint main() { std::printf("bye"); return 7; }'

INFINITE = "int main() { volatile int x = 0; while (true) { x++; } }"


@pytest_asyncio.fixture
async def live_service(tmp_path: Path) -> AsyncGenerator[CompilerServiceAsync, None]:
    config = CompilerConfig(scratch_dir=tmp_path, compile_timeout_ms=120_000, execution_timeout_ms=3_000)
    async with CompilerServiceAsync(config) as svc:
        report = await svc.check_availability()
        if not report.available:
            pytest.skip(f"Toolchain not usable: {report.errors}")
        assert isinstance(svc.runner, EmscriptenRunner)
        yield svc


@pytest.mark.asyncio
async def test_hello_world(live_service: CompilerServiceAsync) -> None:
    compiled = await live_service.compile(HELLO)
    assert compiled.success, compiled.errors
    assert compiled.artifact is not None
    assert compiled.artifact.wasm_bytes()[:4] == b"\x00asm"

    executed = await live_service.execute(compiled.artifact)
    assert executed.stdout.strip() == "hi"
    assert executed.exit_code == 0
    assert not executed.terminated


@pytest.mark.asyncio
async def test_stdin_reaches_program_and_artifact_can_rerun(live_service: CompilerServiceAsync) -> None:
    compiled = await live_service.compile(ECHO, CompileOptions(optimization="O1"))
    assert compiled.artifact is not None

    first = await live_service.execute(compiled.artifact, "hello")
    second = await live_service.execute(compiled.artifact, "again")
    assert first.stdout == "Input: hello\n"
    assert second.stdout == "Input: again\n"


@pytest.mark.asyncio
async def test_exit_code_propagates(live_service: CompilerServiceAsync) -> None:
    compiled = await live_service.compile(EXIT_CODE)
    assert compiled.artifact is not None
    executed = await live_service.execute(compiled.artifact)
    assert executed.exit_code == 7
    assert executed.stdout.strip() == "bye"


@pytest.mark.asyncio
async def test_compiler_diagnostics(live_service: CompilerServiceAsync) -> None:
    compiled = await live_service.compile("int main() { return undefined_name; }")
    assert not compiled.success
    assert "undefined_name" in (compiled.errors or "")


@pytest.mark.asyncio
async def test_infinite_loop_is_terminated(live_service: CompilerServiceAsync) -> None:
    compiled = await live_service.compile(INFINITE)
    assert compiled.artifact is not None
    executed = await live_service.execute(compiled.artifact)
    assert executed.terminated
    assert executed.exit_code == EXIT_CODE_TIMEOUT


@pytest.mark.asyncio
async def test_cleanup_removes_scratch(live_service: CompilerServiceAsync) -> None:
    compiled = await live_service.compile(HELLO)
    assert compiled.artifact is not None and compiled.artifact.wasm_path is not None
    assert compiled.artifact.wasm_path.exists()

    assert (await live_service.cleanup()).success
    assert not compiled.artifact.wasm_path.exists()
