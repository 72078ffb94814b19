"""Viewer input -> capture process command.

Pointer events are mapped to logical display coordinates with the current
capture context and sent to the window-targeted endpoint in window mode, to
the global one otherwise. Key events are forwarded with their modifiers after
translating the few named keys the injectors understand.

Each call issues at most one command. Failures are logged, never retried and
never raised to the viewer socket.
"""

from __future__ import annotations

import logging
from typing import Optional

from screen_relay.core.errors import UpstreamUnavailable
from screen_relay.models.capture import CaptureMode
from screen_relay.models.input import InputEvent
from screen_relay.services.capture_state import CaptureState
from screen_relay.services.coordinate_transform import CoordinateTransformer
from screen_relay.services.input_injector import InputInjector

logger = logging.getLogger(__name__)


NAMED_KEYS = {
    " ": "space",
    "space": "space",
    "Enter": "Return",
    "Backspace": "BackSpace",
    "Tab": "Tab",
    "Escape": "Escape",
}


def translate_key(key: str) -> Optional[str]:
    """Injector token for a browser ``KeyboardEvent.key`` or None to skip it."""
    if key in NAMED_KEYS:
        return NAMED_KEYS[key]
    if len(key) > 1:
        return None
    return key


class InputRouter:
    def __init__(
        self,
        *,
        capture_state: CaptureState,
        transformer: CoordinateTransformer,
        injector: InputInjector,
    ) -> None:
        self._capture_state = capture_state
        self._transformer = transformer
        self._injector = injector

        self.events_routed = 0
        self.events_failed = 0

    async def route(self, event: InputEvent) -> bool:
        """Send one command for ``event``. Returns True if a command was issued."""
        try:
            if event.type.is_pointer:
                sent = await self._route_pointer(event)
            else:
                sent = await self._route_key(event)
        except UpstreamUnavailable as e:
            self.events_failed += 1
            logger.warning(f"Input {event.type.value} dropped, capture process unavailable: {e.message}")
            return False

        if sent:
            self.events_routed += 1
        return sent

    async def _route_pointer(self, event: InputEvent) -> bool:
        assert event.point is not None

        context = await self._capture_state.context()
        point = self._transformer.transform(event.point, event.canvas, context)
        window_id = context.window_id if context.mode == CaptureMode.WINDOW else None

        return await self._injector.pointer(event.type, point, button=event.button, window_id=window_id)

    async def _route_key(self, event: InputEvent) -> bool:
        assert event.key is not None

        token = translate_key(event.key)
        if token is None:
            logger.debug(f"Skipping unsupported key {event.key!r}")
            return False

        target = self._capture_state.current()
        window_id = target.window_id if target.mode == CaptureMode.WINDOW else None
        return await self._injector.key(token, event.modifiers, window_id=window_id)
