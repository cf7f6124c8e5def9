# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_wasm


class SourceValidationError(ValueError):
    """Base class for sources rejected before compilation."""


class SourceTooLargeError(SourceValidationError):
    def __init__(self, limit_kb: int, size_kb: float):
        self.limit_kb = limit_kb
        self.size_kb = size_kb
        super().__init__(f"Source code is too large ({size_kb:.1f}KB); the limit is {limit_kb}KB")


class ForbiddenConstructError(SourceValidationError):
    def __init__(self, construct: str):
        self.construct = construct
        super().__init__(f"Use of '{construct}' is not allowed for security reasons")


class MissingEntryPointError(SourceValidationError):
    def __init__(self) -> None:
        super().__init__("No main function found: define int main() { ... }")


class ToolchainUnavailableError(RuntimeError):
    """Raised when a real runner is requested without a usable toolchain."""
