# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_wasm

import os
from pathlib import Path
from typing import Literal, Mapping

from pydantic import BaseModel, ConfigDict

ToolchainSource = Literal["bundled", "emsdk", "system", "none"]


class ToolchainDescriptor(BaseModel):
    """Describes a discovered Emscripten toolchain.

    Attributes:
        platform: Normalized platform name ('win32', 'darwin', 'linux').
        arch: Normalized CPU architecture ('x64', 'arm64', 'x32' or the raw machine name).
        compiler_path: Absolute path to emcc.
        cxx_path: Absolute path to em++.
        archiver_path: Absolute path to emar.
        runtime_root: Root of the emscripten tree the compiler lives in.
        emsdk_root: Root of the emsdk install, when the toolchain came from one.
        node_path: Node.js binary used to run compiled artifacts.
        python_path: Python binary shipped with emsdk, if any.
        available: Whether the compiler can be used.
        version: Detected version string, or 'bundled' / 'unknown'.
        source: Which discovery step produced the descriptor.
        errors: Messages collected during discovery.
    """

    model_config = ConfigDict(frozen=True)

    platform: str
    arch: str
    compiler_path: Path | None = None
    cxx_path: Path | None = None
    archiver_path: Path | None = None
    runtime_root: Path | None = None
    emsdk_root: Path | None = None
    node_path: Path | None = None
    python_path: Path | None = None
    available: bool = False
    version: str = "unknown"
    source: ToolchainSource = "none"
    errors: tuple[str, ...] = ()

    @classmethod
    def unavailable(cls, platform: str, arch: str, errors: list[str] | None = None) -> "ToolchainDescriptor":
        return cls(platform=platform, arch=arch, available=False, source="none", errors=tuple(errors or ()))

    @property
    def bundled(self) -> bool:
        return self.available and self.source in ("bundled", "emsdk")

    def environment(self, base: Mapping[str, str] | None = None) -> dict[str, str]:
        """Environment variables the toolchain needs, to be merged over the ambient environment.

        A system toolchain already works from the ambient environment, so only bundled
        and emsdk layouts contribute variables.

        Args:
            base: Environment whose PATH is extended. Defaults to os.environ.

        Returns:
            dict[str, str]: Variables to overlay, empty when nothing is required.
        """
        if not self.available or self.source == "system":
            return {}

        base = os.environ if base is None else base
        separator = ";" if self.platform == "win32" else ":"

        prefix: list[str] = []
        if self.runtime_root:
            prefix.append(str(self.runtime_root))
        if self.node_path:
            prefix.append(str(self.node_path.parent))
        existing = base.get("PATH", "")
        if existing:
            prefix.append(existing)

        env = {"PATH": separator.join(prefix)}
        if self.emsdk_root:
            env["EMSDK"] = str(self.emsdk_root)
        if self.node_path:
            env["EMSDK_NODE"] = str(self.node_path)
        if self.python_path:
            env["EMSDK_PYTHON"] = str(self.python_path)
        return env
