# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_wasm

"""Logging sinks for the server process.

Importing this module configures loguru: a human-readable stderr sink (stdout carries the
MCP protocol) and a JSON file sink under logs/.
"""

import os
import sys
from pathlib import Path

from loguru import logger

LOG_DIR = Path("logs")
LOG_LEVEL = os.environ.get("COREASON_WASM_LOG_LEVEL", "INFO")

LOG_DIR.mkdir(parents=True, exist_ok=True)

logger.remove()
logger.configure(extra={"component": "app"})
logger.add(
    sys.stderr,
    level=LOG_LEVEL,
    format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "{extra[component]: <9} | <level>{message}</level>",
)
logger.add(
    LOG_DIR / "app.log",
    level="DEBUG",
    rotation="10 MB",
    retention="7 days",
    serialize=True,
    enqueue=True,
)