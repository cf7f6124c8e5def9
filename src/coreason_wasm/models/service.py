# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_wasm

from pydantic import BaseModel, Field


class AvailabilityReport(BaseModel):
    """Answer to an availability check."""

    available: bool = Field(..., description="Whether a real toolchain will serve compile requests.")
    using_bundled_toolchain: bool = Field(..., description="True when the toolchain ships with the application.")
    version: str = Field(default="unknown", description="Detected toolchain version.")
    errors: list[str] = Field(default_factory=list, description="Discovery problems, if any.")


class CleanupReport(BaseModel):
    success: bool
    error: str | None = None
