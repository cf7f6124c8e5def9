# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_wasm

from typing import TYPE_CHECKING

from loguru import logger

from coreason_wasm.config import CompilerConfig
from coreason_wasm.models import ToolchainDescriptor
from coreason_wasm.runner import BuildRunner
from coreason_wasm.runners.emscripten import EmscriptenRunner
from coreason_wasm.runners.mock import MockRunner
from coreason_wasm.validation import SourceValidator

if TYPE_CHECKING:
    from loguru import Logger


class RunnerFactory:
    """
    Factory to create BuildRunner instances from a toolchain descriptor.
    """

    @staticmethod
    def get_runner(
        config: CompilerConfig,
        descriptor: ToolchainDescriptor,
        log: "Logger | None" = None,
    ) -> BuildRunner:
        """
        Returns the Emscripten runner when the toolchain is usable, the mock runner otherwise.
        """
        log = log or logger
        validator = SourceValidator(max_source_kb=config.max_source_kb)

        if config.force_mock:
            log.info("Mock runner forced by configuration")
            return MockRunner(config=config, validator=validator, log=log.bind(component="mock"))

        if descriptor.available:
            return EmscriptenRunner(descriptor, config=config, validator=validator, log=log)

        log.warning("Emscripten unavailable; falling back to the mock runner")
        return MockRunner(config=config, validator=validator, log=log.bind(component="mock"))
