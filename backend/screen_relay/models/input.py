"""Viewer input event model."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from screen_relay.core.errors import MalformedInput
from screen_relay.models.capture import CanvasSize, Point


class InputEventType(str, Enum):
    CLICK = "click"
    MOUSEMOVE = "mousemove"
    MOUSEDOWN = "mousedown"
    MOUSEUP = "mouseup"
    KEYDOWN = "keydown"

    @property
    def is_pointer(self) -> bool:
        return self is not InputEventType.KEYDOWN


# Browser KeyboardEvent flag -> modifier name
_MODIFIER_FLAGS = {
    "ctrlKey": "ctrl",
    "altKey": "alt",
    "shiftKey": "shift",
    "metaKey": "meta",
}
_MODIFIER_NAMES = ("ctrl", "alt", "shift", "meta")


def _finite(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedInput(f"'{name}' must be a number, got {value!r}")
    try:
        number = float(value)
    except OverflowError as e:
        # JSON integers have no size limit
        raise MalformedInput(f"'{name}' is out of range") from e
    if not math.isfinite(number):
        raise MalformedInput(f"'{name}' must be a finite number, got {value!r}")
    return number


def _number(data: dict[str, Any], name: str) -> float:
    return _finite(name, data.get(name))


def _optional_dim(data: dict[str, Any], name: str) -> int:
    value = data.get(name)
    if value is None:
        return 0
    return int(round(_finite(name, value)))


@dataclass(frozen=True)
class InputEvent:
    type: InputEventType
    point: Optional[Point] = None
    canvas: Optional[CanvasSize] = None
    key: Optional[str] = None
    modifiers: tuple[str, ...] = ()
    button: int = 0

    @classmethod
    def parse(cls, raw: Any) -> "InputEvent":
        """Parse a viewer message (JSON text or already decoded dict).

        Both the flat form ``{type, x, y, ...}`` and the wrapped form
        ``{"type": "input", "data": {...}}`` are accepted.

        Raises:
            MalformedInput: the message is not a valid input event
        """
        if isinstance(raw, (str, bytes)):
            try:
                raw = json.loads(raw)
            except ValueError as e:
                raise MalformedInput(f"invalid JSON: {e}") from e

        if not isinstance(raw, dict):
            raise MalformedInput("message must be a JSON object")

        data = raw
        if raw.get("type") == "input":
            data = raw.get("data")
            if not isinstance(data, dict):
                raise MalformedInput("'data' must be an object")

        try:
            event_type = InputEventType(data.get("type"))
        except ValueError as e:
            raise MalformedInput(f"unknown input type: {data.get('type')!r}") from e

        modifiers = cls._parse_modifiers(data)

        if event_type is InputEventType.KEYDOWN:
            key = data.get("key")
            if not isinstance(key, str) or not key:
                raise MalformedInput("'key' must be a non-empty string")
            return cls(type=event_type, key=key, modifiers=modifiers)

        point = Point(_number(data, "x"), _number(data, "y"))
        width = _optional_dim(data, "canvasWidth")
        height = _optional_dim(data, "canvasHeight")
        canvas = CanvasSize(width, height) if width > 0 and height > 0 else None

        button = data.get("button", 0)
        if isinstance(button, bool) or not isinstance(button, int):
            button = 0

        return cls(type=event_type, point=point, canvas=canvas, modifiers=modifiers, button=button)

    @staticmethod
    def _parse_modifiers(data: dict[str, Any]) -> tuple[str, ...]:
        found: set[str] = set()

        raw_modifiers = data.get("modifiers")
        if isinstance(raw_modifiers, list):
            for m in raw_modifiers:
                if isinstance(m, str) and m.lower() in _MODIFIER_NAMES:
                    found.add(m.lower())
        elif isinstance(raw_modifiers, dict):
            for name, on in raw_modifiers.items():
                if on and isinstance(name, str) and name.lower() in _MODIFIER_NAMES:
                    found.add(name.lower())

        for flag, name in _MODIFIER_FLAGS.items():
            if data.get(flag):
                found.add(name)

        return tuple(m for m in _MODIFIER_NAMES if m in found)
