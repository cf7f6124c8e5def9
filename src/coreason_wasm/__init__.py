# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_wasm

"""
coreason-wasm
"""

__version__ = "0.1.0"
__author__ = "Gowtham A Rao"
__email__ = "gowtham.rao@coreason.ai"

from .build import BuildService
from .config import CompilerConfig
from .errors import (
    ForbiddenConstructError,
    MissingEntryPointError,
    SourceTooLargeError,
    SourceValidationError,
    ToolchainUnavailableError,
)
from .executor import RunSandbox
from .factory import RunnerFactory
from .models import (
    AvailabilityReport,
    CleanupReport,
    CompileOptions,
    CompileOutcome,
    ExecutionLimits,
    ExecutionOutcome,
    ToolchainDescriptor,
    WasmArtifact,
)
from .runner import BuildRunner
from .runners import EmscriptenRunner, MockRunner
from .service import CompilerService, CompilerServiceAsync
from .toolchain import ToolchainLocator
from .validation import SourceValidator

__all__ = [
    "AvailabilityReport",
    "BuildRunner",
    "BuildService",
    "CleanupReport",
    "CompileOptions",
    "CompileOutcome",
    "CompilerConfig",
    "CompilerService",
    "CompilerServiceAsync",
    "EmscriptenRunner",
    "ExecutionLimits",
    "ExecutionOutcome",
    "ForbiddenConstructError",
    "MissingEntryPointError",
    "MockRunner",
    "RunSandbox",
    "RunnerFactory",
    "SourceTooLargeError",
    "SourceValidationError",
    "SourceValidator",
    "ToolchainDescriptor",
    "ToolchainLocator",
    "ToolchainUnavailableError",
    "WasmArtifact",
]
