import asyncio
import os
import shutil
import time
from unittest.mock import MagicMock

import pytest

from coreason_wasm.utils.process import command_line, elapsed_ms, terminate


def test_elapsed_ms() -> None:
    assert elapsed_ms(time.monotonic() - 0.25) >= 249


def test_command_line_wraps_batch_files_on_windows() -> None:
    assert command_line(["C:/emsdk/emcc.bat", "a.cpp"], "win32") == ["cmd.exe", "/c", "C:/emsdk/emcc.bat", "a.cpp"]
    assert command_line(["/opt/emcc", "a.cpp"], "linux") == ["/opt/emcc", "a.cpp"]
    assert command_line(["C:/emsdk/emcc.exe"], "win32") == ["C:/emsdk/emcc.exe"]


@pytest.mark.asyncio
async def test_terminate_skips_finished_process() -> None:
    proc = MagicMock()
    proc.returncode = 0
    await terminate(proc)
    proc.terminate.assert_not_called()
    proc.kill.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.skipif(os.name != "posix" or shutil.which("sh") is None, reason="needs a POSIX shell")
async def test_terminate_kills_process_group() -> None:
    # The shell ignores SIGTERM, so only the SIGKILL escalation can stop it.
    proc = await asyncio.create_subprocess_exec(
        "sh", "-c", "trap '' TERM; sleep 30 & wait", start_new_session=True
    )
    await asyncio.sleep(0.1)

    started = time.monotonic()
    await terminate(proc, grace=0.2)

    assert proc.returncode is not None
    assert time.monotonic() - started < 5
