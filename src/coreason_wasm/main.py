# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_wasm

from typing import Any

from mcp.server.fastmcp import FastMCP
from pydantic import ValidationError

from coreason_wasm.models import CompileOptions, CompileOutcome, ExecutionOutcome, WasmArtifact
from coreason_wasm.service import CompilerServiceAsync

# Initialize the compile-and-run gateway
service = CompilerServiceAsync()

# Initialize MCP Server
mcp = FastMCP("coreason-wasm")


@mcp.tool()  # type: ignore[misc]
async def check_availability() -> dict[str, Any]:
    """
    Report whether C++ compilation is served by a real Emscripten toolchain or the mock runner.
    """
    report = await service.check_availability()
    return report.model_dump(mode="json")


@mcp.tool()  # type: ignore[misc]
async def compile_cpp(
    source_code: str,
    standard: str = "c++17",
    optimization: str = "O0",
    warnings: bool = True,
    debug: bool = True,
    includes: list[str] | None = None,
    libraries: list[str] | None = None,
) -> dict[str, Any]:
    """
    Compile C++ source code to WebAssembly.
    Returns the artifact (base64 module plus file references) or the compiler diagnostics.
    """
    try:
        options = CompileOptions(
            standard=standard,  # type: ignore[arg-type]
            optimization=optimization,  # type: ignore[arg-type]
            warnings=warnings,
            debug=debug,
            includes=includes or [],
            libraries=libraries or [],
        )
    except ValidationError as e:
        return CompileOutcome.failure(f"Invalid compile options: {e}").model_dump(mode="json")

    outcome = await service.compile(source_code, options)
    return outcome.model_dump(mode="json")


@mcp.tool()  # type: ignore[misc]
async def execute_wasm(artifact: dict[str, Any], stdin: str = "") -> dict[str, Any]:
    """
    Execute an artifact returned by compile_cpp, feeding it the given standard input.
    """
    try:
        parsed = WasmArtifact.model_validate(artifact)
    except ValidationError as e:
        return ExecutionOutcome.error(f"Invalid artifact: {e}").model_dump(mode="json")

    outcome = await service.execute(parsed, stdin)
    return outcome.model_dump(mode="json")


@mcp.tool()  # type: ignore[misc]
async def cleanup() -> dict[str, Any]:
    """
    Delete temporary build files and reset toolchain discovery.
    """
    report = await service.cleanup()
    return report.model_dump(mode="json")


def main() -> None:
    """Entry point for the MCP server."""
    import coreason_wasm.utils.logger  # noqa: F401  configures sinks

    mcp.run()


if __name__ == "__main__":  # pragma: no cover
    main()
