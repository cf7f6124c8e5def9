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
import platform
import shutil
import subprocess
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from loguru import logger

from coreason_wasm.config import CompilerConfig
from coreason_wasm.models import ToolchainDescriptor

if TYPE_CHECKING:
    from loguru import Logger

VERSION_FILE = "emscripten-version.txt"


def platform_name() -> str:
    """Normalized platform name.

    Raises:
        ValueError: If the platform is not supported.
    """
    if sys.platform.startswith("win"):
        return "win32"
    if sys.platform == "darwin":
        return "darwin"
    if sys.platform.startswith("linux"):
        return "linux"
    raise ValueError(f"Unsupported platform: {sys.platform}")


def arch_name() -> str:
    machine = platform.machine().lower()
    if machine in ("x86_64", "amd64", "x64"):
        return "x64"
    if machine in ("arm64", "aarch64"):
        return "arm64"
    if machine in ("i386", "i686", "x86", "ia32"):
        return "x32"
    return machine


class ToolchainLocator:
    """Discovers the Emscripten toolchain for the current platform.

    Discovery tries, in order: a bundled tree matching the platform and architecture,
    an emsdk install layout, and finally a system emcc on PATH. The result is computed
    once and cached until clear_cache() is called. locate() never raises; total failure
    yields a descriptor with available=False.
    """

    def __init__(self, config: CompilerConfig | None = None, log: "Logger | None" = None):
        """Initializes the ToolchainLocator.

        Args:
            config: Service configuration. Defaults are used when omitted.
            log: Logger to report discovery through.
        """
        self.config = config or CompilerConfig()
        self._log = log or logger.bind(component="toolchain")
        self._descriptor: ToolchainDescriptor | None = None

    @property
    def cached(self) -> ToolchainDescriptor | None:
        return self._descriptor

    def locate(self) -> ToolchainDescriptor:
        """Return the cached descriptor, discovering it on first use."""
        if self._descriptor is None:
            self._descriptor = self._discover()
        return self._descriptor

    def clear_cache(self) -> None:
        self._descriptor = None

    def resource_roots(self) -> list[Path]:
        """Existing directories that may hold a bundled toolchain, most specific first."""
        candidates: list[Path] = []
        if self.config.resources_path:
            candidates.append(Path(self.config.resources_path))
        candidates.extend(
            [
                Path(__file__).resolve().parent / "resources" / "emscripten",
                Path(sys.prefix) / "share" / "coreason-wasm" / "emscripten",
                Path(sys.executable).resolve().parent / "resources" / "emscripten",
                Path.cwd() / "resources" / "emscripten",
            ]
        )

        roots: list[Path] = []
        for candidate in candidates:
            if candidate.is_dir() and candidate not in roots:
                roots.append(candidate)
        return roots

    def _discover(self) -> ToolchainDescriptor:
        arch = arch_name()
        try:
            plat = platform_name()
        except ValueError as e:
            self._log.warning(str(e))
            return ToolchainDescriptor.unavailable(sys.platform, arch, [str(e)])

        errors: list[str] = []
        finders: list[Callable[[str, str, list[str]], ToolchainDescriptor | None]] = [
            self._find_bundled,
            self._find_emsdk,
            self._find_system,
        ]
        for finder in finders:
            try:
                descriptor = finder(plat, arch, errors)
            except Exception as e:
                self._log.error(f"Toolchain discovery step {finder.__name__} failed: {e}")
                errors.append(f"{finder.__name__}: {e}")
                continue
            if descriptor is None:
                continue

            if descriptor.node_path is None:
                notes = ("Node.js runtime not found; compiled programs cannot be executed",)
                descriptor = descriptor.model_copy(update={"errors": notes})
            self._log.info(
                f"Using {descriptor.source} Emscripten {descriptor.version} at {descriptor.compiler_path}"
            )
            return descriptor

        self._log.warning(f"Emscripten not found: {'; '.join(errors)}")
        return ToolchainDescriptor.unavailable(plat, arch, errors)

    def _find_bundled(self, plat: str, arch: str, errors: list[str]) -> ToolchainDescriptor | None:
        names = ["emcc.bat"] if plat == "win32" else ["emcc", "emcc.sh"]
        for root in self.resource_roots():
            for tree in (root / f"{plat}-{arch}", root / plat):
                for name in names:
                    compiler = tree / name
                    if not compiler.is_file():
                        continue
                    if plat != "win32":
                        self._ensure_executable([tree, tree / "bin", tree / "llvm" / "bin"])
                    return self._describe(
                        plat,
                        arch,
                        compiler,
                        runtime_root=tree,
                        emsdk_root=None,
                        version=self._read_version(tree, default="bundled"),
                        source="bundled",
                    )
        errors.append(f"No bundled toolchain for {plat}-{arch}")
        return None

    def _find_emsdk(self, plat: str, arch: str, errors: list[str]) -> ToolchainDescriptor | None:
        emsdk_roots = [root / "emsdk" for root in self.resource_roots()]
        if os.environ.get("EMSDK"):
            emsdk_roots.append(Path(os.environ["EMSDK"]))

        name = "emcc.bat" if plat == "win32" else "emcc"
        for emsdk_root in emsdk_roots:
            emscripten = emsdk_root / "upstream" / "emscripten"
            compiler = emscripten / name
            if not compiler.is_file():
                continue
            if plat != "win32":
                self._ensure_executable([emscripten, emsdk_root / "upstream" / "bin"])
            return self._describe(
                plat,
                arch,
                compiler,
                runtime_root=emscripten,
                emsdk_root=emsdk_root,
                version=self._read_version(emscripten, default="bundled"),
                source="emsdk",
            )
        errors.append("No emsdk install found")
        return None

    def _find_system(self, plat: str, arch: str, errors: list[str]) -> ToolchainDescriptor | None:
        found = shutil.which(self.config.emcc_path)
        if not found:
            errors.append(f"{self.config.emcc_path} not found on PATH")
            return None

        try:
            probe = subprocess.run(
                [found, "--version"],
                capture_output=True,
                text=True,
                timeout=self.config.version_probe_timeout_ms / 1000,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            errors.append(f"{found} --version failed: {e}")
            return None

        if probe.returncode != 0:
            errors.append(f"{found} --version exited with {probe.returncode}: {probe.stderr.strip()}")
            return None

        lines = probe.stdout.strip().splitlines()
        compiler = Path(found)
        return self._describe(
            plat,
            arch,
            compiler,
            runtime_root=compiler.resolve().parent,
            emsdk_root=None,
            version=lines[0].strip() if lines else "unknown",
            source="system",
        )

    def _describe(
        self,
        plat: str,
        arch: str,
        compiler: Path,
        runtime_root: Path,
        emsdk_root: Path | None,
        version: str,
        source: str,
    ) -> ToolchainDescriptor:
        suffix = compiler.suffix
        node_search = [emsdk_root, runtime_root] if emsdk_root else [runtime_root]
        return ToolchainDescriptor(
            platform=plat,
            arch=arch,
            compiler_path=compiler,
            cxx_path=compiler.with_name(f"em++{suffix}"),
            archiver_path=compiler.with_name(f"emar{suffix}"),
            runtime_root=runtime_root,
            emsdk_root=emsdk_root,
            node_path=self._find_node(plat, node_search),
            python_path=self._find_python(plat, emsdk_root),
            available=True,
            version=version,
            source=source,  # type: ignore[arg-type]
        )

    def _find_node(self, plat: str, search: list[Path]) -> Path | None:
        if self.config.node_path:
            configured = shutil.which(self.config.node_path)
            return Path(configured) if configured else None

        binary = "node.exe" if plat == "win32" else "node"
        for root in search:
            for candidate in sorted((root / "node").glob(f"*/bin/{binary}")):
                if candidate.is_file():
                    return candidate
        found = shutil.which("node")
        return Path(found) if found else None

    def _find_python(self, plat: str, emsdk_root: Path | None) -> Path | None:
        if emsdk_root is None:
            return None
        binary = "python.exe" if plat == "win32" else "python"
        for candidate in sorted((emsdk_root / "python").glob(f"*/{binary}")):
            if candidate.is_file():
                return candidate
        return None

    def _read_version(self, tree: Path, default: str) -> str:
        for candidate in (tree / VERSION_FILE, tree.parent / VERSION_FILE):
            if not candidate.is_file():
                continue
            try:
                return candidate.read_text(encoding="utf-8").strip().strip('"') or default
            except OSError as e:
                self._log.warning(f"Failed to read toolchain version from {candidate}: {e}")
                return "unknown"
        return default

    def _ensure_executable(self, directories: list[Path]) -> None:
        """Archive extraction may drop the execute bit; restore it on every file in the given directories."""
        for directory in directories:
            if not directory.is_dir():
                continue
            try:
                for entry in directory.iterdir():
                    if entry.is_file():
                        os.chmod(entry, 0o755)
            except OSError as e:
                self._log.warning(f"Failed to set executable permissions in {directory}: {e}")
