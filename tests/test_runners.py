import base64
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from coreason_wasm.config import CompilerConfig
from coreason_wasm.models import EXIT_CODE_ERROR, CompileOptions, ExecutionOutcome, ToolchainDescriptor, WasmArtifact
from coreason_wasm.runner import BuildRunner
from coreason_wasm.runners import EmscriptenRunner, MockRunner
from coreason_wasm.runners.mock import MOCK_NOTICE, WASM_HEADER

VALID = "int main() { return 0; }"


def test_runner_is_abstract() -> None:
    with pytest.raises(TypeError):
        BuildRunner()  # type: ignore[abstract]


@pytest.mark.asyncio
async def test_mock_compile_returns_wasm_header(config: CompilerConfig) -> None:
    outcome = await MockRunner(config).compile(VALID, CompileOptions())

    assert outcome.success
    assert outcome.artifact is not None
    assert outcome.artifact.mock
    assert base64.b64decode(outcome.artifact.wasm_binary) == WASM_HEADER
    assert outcome.warnings is not None


@pytest.mark.asyncio
async def test_mock_compile_without_warnings(config: CompilerConfig) -> None:
    outcome = await MockRunner(config).compile(VALID, CompileOptions(warnings=False))
    assert outcome.warnings is None


@pytest.mark.asyncio
async def test_mock_compile_applies_validation(config: CompilerConfig) -> None:
    outcome = await MockRunner(config).compile('int main(){ system("rm -rf /"); }', CompileOptions())
    assert not outcome.success
    assert "system(" in (outcome.errors or "")


@pytest.mark.asyncio
async def test_mock_compile_canned_syntax_error(config: CompilerConfig) -> None:
    outcome = await MockRunner(config).compile("int main() { syntax_error }", CompileOptions())
    assert not outcome.success
    assert outcome.errors == "error: syntax error detected"


@pytest.mark.asyncio
async def test_mock_execute_echoes_stdin(config: CompilerConfig) -> None:
    runner = MockRunner(config)
    compiled = await runner.compile(VALID, CompileOptions())
    assert compiled.artifact is not None

    outcome = await runner.execute(compiled.artifact, "  42 \n")

    assert outcome.stdout == "Hello, World!\nInput: 42\n" + MOCK_NOTICE
    assert outcome.exit_code == 0
    assert not outcome.terminated
    assert outcome.memory_usage_kb > 0


@pytest.mark.asyncio
async def test_mock_execute_without_stdin(config: CompilerConfig) -> None:
    outcome = await MockRunner(config).execute(WasmArtifact(wasm_binary="", mock=True), "")
    assert outcome.stdout == "Hello, World!\n" + MOCK_NOTICE


@pytest.mark.asyncio
async def test_mock_execute_rejects_oversized_stdin() -> None:
    runner = MockRunner(CompilerConfig(max_output_bytes=3, mock_execute_delay_ms=0))
    outcome = await runner.execute(WasmArtifact(wasm_binary="", mock=True), "four")
    assert outcome.exit_code == EXIT_CODE_ERROR


@pytest.mark.asyncio
async def test_emscripten_runner_delegates(descriptor: ToolchainDescriptor, config: CompilerConfig) -> None:
    runner = EmscriptenRunner(descriptor, config)
    assert runner.sandbox.descriptor is descriptor
    assert runner.sandbox.limits == config.execution_limits()

    compiled: Any = object()
    executed = ExecutionOutcome(stdout="x", stderr="", exit_code=0, execution_time_ms=1)
    artifact = WasmArtifact(wasm_binary="", wasm_path=Path("a.wasm"), loader_path=Path("a.js"))
    with (
        patch.object(runner.build, "compile", AsyncMock(return_value=compiled)) as compile_,
        patch.object(runner.sandbox, "execute", AsyncMock(return_value=executed)) as execute,
        patch.object(runner.build, "cleanup", AsyncMock()) as cleanup,
    ):
        assert await runner.compile(VALID, CompileOptions()) is compiled
        assert await runner.execute(artifact, "in") is executed
        await runner.cleanup()

    compile_.assert_awaited_once_with(VALID, CompileOptions())
    execute.assert_awaited_once_with(artifact, "in")
    cleanup.assert_awaited_once()


@pytest.mark.asyncio
async def test_emscripten_runner_refuses_mock_artifacts(
    descriptor: ToolchainDescriptor, config: CompilerConfig
) -> None:
    runner = EmscriptenRunner(descriptor, config)
    outcome = await runner.execute(WasmArtifact(wasm_binary="", mock=True), "")
    assert outcome.exit_code == EXIT_CODE_ERROR
