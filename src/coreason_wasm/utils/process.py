# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_wasm

import asyncio
import os
import signal
import time


def elapsed_ms(start: float) -> int:
    """Milliseconds since a time.monotonic() reading."""
    return int((time.monotonic() - start) * 1000)


def command_line(args: list[str], plat: str) -> list[str]:
    """Batch files cannot be spawned directly on Windows; route them through cmd.exe."""
    if plat == "win32" and args and args[0].lower().endswith(".bat"):
        return ["cmd.exe", "/c", *args]
    return list(args)


def _send(proc: asyncio.subprocess.Process, sig: int) -> None:
    # Children are spawned with start_new_session=True on POSIX, so the pid is also the group id.
    try:
        if os.name == "posix":
            os.killpg(proc.pid, sig)
        elif sig == signal.SIGTERM:
            proc.terminate()
        else:
            proc.kill()
    except ProcessLookupError:
        pass


async def terminate(proc: asyncio.subprocess.Process, grace: float = 0.5) -> None:
    """Stop a subprocess: SIGTERM, then SIGKILL if it is still alive after the grace period."""
    if proc.returncode is not None:
        return

    _send(proc, signal.SIGTERM)
    try:
        await asyncio.wait_for(proc.wait(), timeout=grace)
    except asyncio.TimeoutError:
        _send(proc, getattr(signal, "SIGKILL", signal.SIGTERM))
        await proc.wait()
