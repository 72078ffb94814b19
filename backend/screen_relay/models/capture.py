"""Capture domain models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class CaptureMode(str, Enum):
    """現在のキャプチャ対象"""

    DESKTOP = "desktop"
    WINDOW = "window"


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class CanvasSize:
    """Size of the viewer canvas the point was reported in."""

    width: int
    height: int

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


@dataclass(frozen=True)
class DisplayMetrics:
    """ディスプレイ情報 (logical / physical / scale)"""

    logical_width: int
    logical_height: int
    physical_width: int
    physical_height: int
    scale_factor: float

    @classmethod
    def fallback(cls) -> "DisplayMetrics":
        """Retina 1920x1080 display, used when the capture process is unreachable."""
        return cls(
            logical_width=1920,
            logical_height=1080,
            physical_width=3840,
            physical_height=2160,
            scale_factor=2.0,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DisplayMetrics":
        """Parse the capture process `/display` payload.

        Raises:
            ValueError: required keys are missing or not numeric
        """
        try:
            width = int(data["width"])
            height = int(data["height"])
            physical_width = int(data.get("physicalWidth", width))
            physical_height = int(data.get("physicalHeight", height))
            scale_factor = float(data.get("scaleFactor") or 0)
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid display metrics payload: {data!r}") from e
        return cls(
            logical_width=width,
            logical_height=height,
            physical_width=physical_width,
            physical_height=physical_height,
            scale_factor=scale_factor,
        )

    def to_dict(self) -> dict:
        return {
            "width": self.logical_width,
            "height": self.logical_height,
            "physicalWidth": self.physical_width,
            "physicalHeight": self.physical_height,
            "scaleFactor": self.scale_factor,
        }


@dataclass(frozen=True)
class CaptureTarget:
    """Mode plus window id. window_id is set if and only if mode is WINDOW."""

    mode: CaptureMode = CaptureMode.DESKTOP
    window_id: Optional[int] = None

    def __post_init__(self) -> None:
        if self.mode == CaptureMode.WINDOW and self.window_id is None:
            raise ValueError("window capture requires a window_id")
        if self.mode == CaptureMode.DESKTOP and self.window_id is not None:
            raise ValueError("desktop capture must not carry a window_id")

    @classmethod
    def desktop(cls) -> "CaptureTarget":
        return cls()

    @classmethod
    def window(cls, window_id: int) -> "CaptureTarget":
        return cls(mode=CaptureMode.WINDOW, window_id=int(window_id))

    def to_dict(self) -> dict:
        return {"mode": self.mode.value, "windowId": self.window_id}


@dataclass(frozen=True)
class CaptureContext:
    mode: CaptureMode
    window_id: Optional[int]
    display_metrics: Optional[DisplayMetrics]

    @classmethod
    def from_target(cls, target: CaptureTarget, metrics: Optional[DisplayMetrics]) -> "CaptureContext":
        return cls(mode=target.mode, window_id=target.window_id, display_metrics=metrics)
