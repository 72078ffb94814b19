"""Viewer canvas coordinates -> source display logical coordinates.

ScreenCaptureKit delivers frames at physical (Retina) resolution while click
injection expects logical points, so viewer coordinates sometimes need to be
divided by the display scale factor:

| mode    | canvas vs physical display           | scaling          |
|---------|--------------------------------------|------------------|
| desktop | exactly equal                        | / scaleFactor    |
| desktop | anything else                        | none             |
| window  | strictly smaller on both axes        | / scaleFactor    |
| window  | anything else                        | none             |

The window rule is a heuristic: the capture process does not report a per
window scale. It lives in ``CoordinateTransformer.scale_factor_for`` only.

A static calibration offset is added after scaling and every result is
rounded half up.
"""

from __future__ import annotations

import logging
import math
from typing import Optional

from screen_relay.models.capture import CanvasSize, CaptureContext, CaptureMode, DisplayMetrics, Point

logger = logging.getLogger(__name__)

DEFAULT_SCALE_FACTOR = 2.0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class CoordinateTransformer:
    """Pure coordinate mapping; holds only configuration."""

    def __init__(
        self,
        *,
        offset_x: int = 0,
        offset_y: int = 0,
        default_scale_factor: float = DEFAULT_SCALE_FACTOR,
        debug: bool = False,
    ) -> None:
        self.offset_x = int(offset_x)
        self.offset_y = int(offset_y)
        self.default_scale_factor = float(default_scale_factor) if default_scale_factor > 0 else DEFAULT_SCALE_FACTOR
        self.debug = debug

    def transform(
        self,
        point: Point,
        canvas: Optional[CanvasSize],
        context: CaptureContext,
    ) -> Point:
        scale = self.scale_factor_for(canvas, context)
        if scale is None:
            x, y = point.x, point.y
        else:
            x, y = point.x / scale, point.y / scale

        result = Point(round_half_up(x) + self.offset_x, round_half_up(y) + self.offset_y)

        if self.debug:
            canvas_desc = f"{canvas.width}x{canvas.height}" if canvas else "none"
            logger.info(
                f"{context.mode.value} transform: {point.x},{point.y} -> {result.x},{result.y} "
                f"(scale: {scale or 1}x, canvas: {canvas_desc})"
            )
        return result

    def scale_factor_for(self, canvas: Optional[CanvasSize], context: CaptureContext) -> Optional[float]:
        """Return the divisor to apply, or None when coordinates pass through."""

        if canvas is None or canvas.is_empty:
            return None

        metrics = context.display_metrics or DisplayMetrics.fallback()
        scale = metrics.scale_factor if metrics.scale_factor and metrics.scale_factor > 0 else self.default_scale_factor

        if context.mode == CaptureMode.WINDOW:
            # Windows smaller than the physical display are assumed to be
            # captured at Retina resolution.
            is_retina_capture = (
                canvas.width < metrics.physical_width and canvas.height < metrics.physical_height
            )
            return scale if is_retina_capture else None

        if canvas.width == metrics.physical_width and canvas.height == metrics.physical_height:
            return scale
        return None

    def to_dict(self) -> dict:
        return {"x": self.offset_x, "y": self.offset_y}


def transform(
    point: Point,
    canvas: Optional[CanvasSize],
    context: CaptureContext,
    *,
    offset_x: int = 0,
    offset_y: int = 0,
) -> Point:
    """Functional shortcut for a transformer with the given offsets."""
    return CoordinateTransformer(offset_x=offset_x, offset_y=offset_y).transform(point, canvas, context)
