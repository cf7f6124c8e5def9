# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_wasm

"""Textual pre-checks applied to C++ sources before any process is spawned."""

from coreason_wasm.errors import (
    ForbiddenConstructError,
    MissingEntryPointError,
    SourceTooLargeError,
    SourceValidationError,
)

FORBIDDEN_CONSTRUCTS: tuple[str, ...] = (
    "#include <windows.h>",
    "#include <unistd.h>",
    "#include <sys/socket.h>",
    "#include <netinet/in.h>",
    "system(",
    "exec(",
    "popen(",
    "__asm__",
    "asm volatile",
)

ENTRY_POINTS: tuple[str, ...] = ("int main", "void main")


class SourceValidator:
    """Rejects oversized sources, denylisted constructs and sources without a main function.

    This is a cheap substring filter, not a parser. It keeps obvious misuse away from the
    compiler but is not a security boundary on its own.
    """

    def __init__(
        self,
        max_source_kb: int = 100,
        forbidden: tuple[str, ...] = FORBIDDEN_CONSTRUCTS,
    ):
        """Initializes the SourceValidator.

        Args:
            max_source_kb: Largest accepted source, in KiB of UTF-8.
            forbidden: Substrings that cause rejection.
        """
        self.max_source_kb = max_source_kb
        self.forbidden = forbidden

    def validate(self, source: str) -> None:
        """Check a source, failing fast in size → denylist → entry point order.

        Raises:
            SourceTooLargeError: If the source exceeds the size ceiling.
            ForbiddenConstructError: If the source contains a denylisted construct.
            MissingEntryPointError: If no main function is present.
        """
        size_kb = len(source.encode("utf-8")) / 1024
        if size_kb > self.max_source_kb:
            raise SourceTooLargeError(self.max_source_kb, size_kb)

        for construct in self.forbidden:
            if construct in source:
                raise ForbiddenConstructError(construct)

        if not any(entry in source for entry in ENTRY_POINTS):
            raise MissingEntryPointError()

    def check(self, source: str) -> SourceValidationError | None:
        """Non-raising variant of validate()."""
        try:
            self.validate(source)
        except SourceValidationError as e:
            return e
        return None
