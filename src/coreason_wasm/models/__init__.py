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
Data models for the build-and-run service.
"""

from .compile import CompileOptions, CompileOutcome, CppStandard, OptimizationLevel, WasmArtifact
from .execution import EXIT_CODE_ERROR, EXIT_CODE_TIMEOUT, ExecutionLimits, ExecutionOutcome, WrapperConfig
from .service import AvailabilityReport, CleanupReport
from .toolchain import ToolchainDescriptor

__all__ = [
    "EXIT_CODE_ERROR",
    "EXIT_CODE_TIMEOUT",
    "AvailabilityReport",
    "CleanupReport",
    "CompileOptions",
    "CompileOutcome",
    "CppStandard",
    "ExecutionLimits",
    "ExecutionOutcome",
    "OptimizationLevel",
    "ToolchainDescriptor",
    "WasmArtifact",
    "WrapperConfig",
]
