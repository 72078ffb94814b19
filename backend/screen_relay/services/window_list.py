"""Window enumeration via the native ``list_windows_cg`` tool.

The tool prints a JSON array of window records
(``cgWindowID``, ``app``, ``title``, position and size). Records are returned
unchanged.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


class WindowListError(RuntimeError):
    pass


def parse_window_list(stdout: bytes) -> list[dict[str, Any]]:
    try:
        windows = json.loads(stdout.decode("utf-8", errors="replace"))
    except ValueError as e:
        raise WindowListError(f"window list is not valid JSON: {e}") from e
    if not isinstance(windows, list):
        raise WindowListError("window list must be a JSON array")
    return [w for w in windows if isinstance(w, dict)]


async def list_windows(tool_path: str, *, timeout_sec: float = 5.0) -> list[dict[str, Any]]:
    try:
        proc = await asyncio.create_subprocess_exec(
            tool_path,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise WindowListError(f"could not run {tool_path}: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout_sec)
    except asyncio.TimeoutError as e:
        proc.kill()
        await proc.wait()
        raise WindowListError(f"{tool_path} timed out after {timeout_sec}s") from e

    if proc.returncode != 0:
        raise WindowListError(
            f"{tool_path} exited with {proc.returncode}: {stderr.decode(errors='ignore').strip()}"
        )

    windows = parse_window_list(stdout)
    logger.debug(f"Listed {len(windows)} windows")
    return windows
