# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_wasm

import base64
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CppStandard(str, Enum):
    CXX11 = "c++11"
    CXX14 = "c++14"
    CXX17 = "c++17"
    CXX20 = "c++20"


class OptimizationLevel(str, Enum):
    O0 = "O0"
    O1 = "O1"
    O2 = "O2"
    O3 = "O3"


class CompileOptions(BaseModel):
    """Per-request compiler options.

    Attributes:
        standard: The C++ language standard.
        optimization: The optimization level.
        warnings: Enables -Wall -Wextra.
        debug: Emits debug information (-g).
        includes: Additional include directories.
        libraries: Additional libraries to link.
    """

    model_config = ConfigDict(frozen=True)

    standard: CppStandard = CppStandard.CXX17
    optimization: OptimizationLevel = OptimizationLevel.O0
    warnings: bool = True
    debug: bool = True
    includes: list[str] = Field(default_factory=list)
    libraries: list[str] = Field(default_factory=list)

    def compiler_flags(self) -> list[str]:
        """Language, optimization, warning and debug flags. Include and library flags are added by the caller."""
        flags = [f"-std={self.standard.value}", f"-{self.optimization.value}"]
        if self.warnings:
            flags.extend(["-Wall", "-Wextra"])
        if self.debug:
            flags.append("-g")
        return flags


class WasmArtifact(BaseModel):
    """A compiled module and the loader that runs it.

    Attributes:
        wasm_binary: Base64 encoded .wasm payload.
        wasm_path: Location of the .wasm file on disk.
        loader_path: Location of the JavaScript loader produced next to it.
        mock: True when produced by the mock runner (no files on disk).
    """

    wasm_binary: str
    wasm_path: Path | None = None
    loader_path: Path | None = None
    mock: bool = False

    def wasm_bytes(self) -> bytes:
        return base64.b64decode(self.wasm_binary)


class CompileOutcome(BaseModel):
    """The result of a single compile call."""

    model_config = ConfigDict(frozen=True)

    success: bool
    artifact: WasmArtifact | None = None
    errors: str | None = None
    warnings: str | None = None
    compile_time_ms: int = 0

    @model_validator(mode="after")
    def _artifact_matches_success(self) -> "CompileOutcome":
        if self.success and self.artifact is None:
            raise ValueError("A successful compile must carry an artifact")
        if not self.success and self.artifact is not None:
            raise ValueError("A failed compile cannot carry an artifact")
        return self

    @classmethod
    def failure(cls, errors: str, compile_time_ms: int = 0, warnings: str | None = None) -> "CompileOutcome":
        return cls(success=False, errors=errors, warnings=warnings or None, compile_time_ms=compile_time_ms)
