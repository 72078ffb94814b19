"""Input injection backends.

- NativeInjector: the capture process HTTP API (macOS, ScreenCaptureKit
  server). Only clicks and key presses exist there.
- XdotoolInjector: ``xdotool`` against an X display (Linux).
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Awaitable, Callable, Optional, Protocol

from screen_relay.core.errors import UpstreamUnavailable
from screen_relay.models.capture import Point
from screen_relay.models.input import InputEventType
from screen_relay.services.capture_client import CaptureClient

logger = logging.getLogger(__name__)


class InputInjector(Protocol):
    async def pointer(
        self,
        event_type: InputEventType,
        point: Point,
        *,
        button: int = 0,
        window_id: Optional[int] = None,
    ) -> bool: ...

    async def key(self, key: str, modifiers: tuple[str, ...], *, window_id: Optional[int] = None) -> bool: ...


class NativeInjector:
    """Forward input to the native capture process."""

    def __init__(self, client: CaptureClient) -> None:
        self._client = client

    async def pointer(
        self,
        event_type: InputEventType,
        point: Point,
        *,
        button: int = 0,
        window_id: Optional[int] = None,
    ) -> bool:
        if event_type not in (InputEventType.CLICK, InputEventType.MOUSEDOWN):
            # The native API has no move / button-up command.
            logger.debug(f"Native injector ignores {event_type.value}")
            return False

        result = await self._client.click(int(point.x), int(point.y), window_id=window_id)
        target = f"window {window_id}" if window_id is not None else "global"
        logger.info(f"Click sent ({target}) at {int(point.x)},{int(point.y)}: {result.get('status', 'ok')}")
        return True

    async def key(self, key: str, modifiers: tuple[str, ...], *, window_id: Optional[int] = None) -> bool:
        result = await self._client.key(key, list(modifiers), window_id=window_id)
        target = f"window {window_id}" if window_id is not None else "global"
        logger.info(f"Key '{key}' sent ({target}): {result.get('status', 'ok')}")
        return True


CommandRunner = Callable[[list[str], dict[str, str]], Awaitable[int]]


async def _run_command(args: list[str], env: dict[str, str]) -> int:
    proc = await asyncio.create_subprocess_exec(
        *args,
        stdout=asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.PIPE,
        env=env,
    )
    _, stderr = await proc.communicate()
    if proc.returncode != 0 and stderr:
        logger.debug(f"{args[0]} stderr: {stderr.decode(errors='ignore').strip()}")
    return proc.returncode if proc.returncode is not None else -1


# Browser MouseEvent.button -> X11 button
_X_BUTTONS = {0: 1, 1: 2, 2: 3}

_X_MODIFIERS = {"ctrl": "ctrl", "alt": "alt", "shift": "shift", "meta": "super"}


class XdotoolInjector:
    """Inject input with xdotool. Window targeting is not supported."""

    def __init__(self, *, display: str = ":20.0", runner: CommandRunner = _run_command) -> None:
        self.display = display
        self._runner = runner

    def pointer_command(self, event_type: InputEventType, point: Point, button: int = 0) -> list[str]:
        x, y = str(int(point.x)), str(int(point.y))
        x_button = str(_X_BUTTONS.get(button, 1))
        if event_type is InputEventType.MOUSEMOVE:
            return ["xdotool", "mousemove", x, y]
        if event_type is InputEventType.MOUSEDOWN:
            return ["xdotool", "mousemove", x, y, "mousedown", x_button]
        if event_type is InputEventType.MOUSEUP:
            return ["xdotool", "mousemove", x, y, "mouseup", x_button]
        if event_type is InputEventType.CLICK:
            return ["xdotool", "mousemove", x, y, "click", x_button]
        raise ValueError(f"not a pointer event: {event_type}")

    def key_command(self, key: str, modifiers: tuple[str, ...]) -> list[str]:
        prefix = "".join(f"{_X_MODIFIERS[m]}+" for m in modifiers if m in _X_MODIFIERS)
        return ["xdotool", "key", f"{prefix}{key}"]

    async def pointer(
        self,
        event_type: InputEventType,
        point: Point,
        *,
        button: int = 0,
        window_id: Optional[int] = None,
    ) -> bool:
        await self._exec(self.pointer_command(event_type, point, button))
        return True

    async def key(self, key: str, modifiers: tuple[str, ...], *, window_id: Optional[int] = None) -> bool:
        await self._exec(self.key_command(key, modifiers))
        return True

    async def _exec(self, args: list[str]) -> None:
        env = {**os.environ, "DISPLAY": self.display}
        try:
            code = await self._runner(args, env)
        except OSError as e:
            raise UpstreamUnavailable(f"{args[0]} could not be started: {e}") from e
        if code != 0:
            raise UpstreamUnavailable(f"{' '.join(args)} exited with {code}")
