# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_wasm

from abc import ABC, abstractmethod

from coreason_wasm.models import CompileOptions, CompileOutcome, ExecutionOutcome, WasmArtifact


class BuildRunner(ABC):
    """
    Abstract base class for build-and-run backends (real toolchain or mock).
    Follows the Strategy Pattern; the backend is chosen once at construction.
    """

    @abstractmethod
    async def compile(self, source: str, options: CompileOptions) -> CompileOutcome:
        """Compile a C++ source into a WebAssembly artifact.

        Args:
            source: The C++ program.
            options: Compiler options.

        Returns:
            CompileOutcome: The artifact on success, diagnostics otherwise. Validation and
            compiler failures are reported through the outcome, not raised.
        """
        pass  # pragma: no cover

    @abstractmethod
    async def execute(self, artifact: WasmArtifact, stdin: str) -> ExecutionOutcome:
        """Run a compiled artifact.

        Args:
            artifact: An artifact returned by compile().
            stdin: Text supplied to the program's standard input.

        Returns:
            ExecutionOutcome: Captured output, exit code and timing.
        """
        pass  # pragma: no cover

    @abstractmethod
    async def cleanup(self) -> None:
        """Release temporary files and any other resources held by the runner."""
        pass  # pragma: no cover
