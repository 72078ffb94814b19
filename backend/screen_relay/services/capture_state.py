"""Capture target state machine and display metrics cache.

States: Desktop (initial) and Window(window_id).

- switch_to_window(id): any -> Window(id)
- reset_to_desktop():   any -> Desktop

The current target is one immutable ``CaptureTarget`` that is replaced as a
whole, so readers never observe a mode without its window id. Concurrent
transitions are last-writer-wins.

One instance is created per application (``app.state.capture_state``) and
handed to the input router and the capture endpoints.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

from screen_relay.core.errors import UpstreamUnavailable
from screen_relay.models.capture import CaptureContext, CaptureMode, CaptureTarget, DisplayMetrics

logger = logging.getLogger(__name__)


class DisplayMetricsSource(Protocol):
    async def get_display_metrics(self) -> DisplayMetrics: ...


class CaptureState:
    """キャプチャ対象とディスプレイ情報キャッシュを保持する"""

    def __init__(self, metrics_source: Optional[DisplayMetricsSource] = None) -> None:
        self._target = CaptureTarget.desktop()
        self._metrics_source = metrics_source
        self._metrics: Optional[DisplayMetrics] = None
        self._metrics_lock = asyncio.Lock()

    def current(self) -> CaptureTarget:
        return self._target

    @property
    def mode(self) -> CaptureMode:
        return self._target.mode

    def switch_to_window(self, window_id: int) -> CaptureTarget:
        self._target = CaptureTarget.window(window_id)
        logger.info(f"Capture mode: window {self._target.window_id}")
        return self._target

    def reset_to_desktop(self) -> CaptureTarget:
        self._target = CaptureTarget.desktop()
        logger.info("Capture mode: desktop")
        return self._target

    @property
    def cached_display_metrics(self) -> Optional[DisplayMetrics]:
        return self._metrics

    def invalidate_display_metrics(self) -> None:
        self._metrics = None

    async def display_metrics(self) -> DisplayMetrics:
        """Cached display metrics, fetched on first use.

        The first successful fetch is cached for the process lifetime (until
        ``invalidate_display_metrics``). When the capture process is
        unreachable the Retina fallback is returned and nothing is cached.
        """
        if self._metrics is not None:
            return self._metrics

        if self._metrics_source is None:
            return DisplayMetrics.fallback()

        async with self._metrics_lock:
            if self._metrics is not None:
                return self._metrics
            try:
                metrics = await self._metrics_source.get_display_metrics()
            except (UpstreamUnavailable, ValueError) as e:
                logger.warning(f"Could not get display info, using fallback: {e}")
                return DisplayMetrics.fallback()

            self._metrics = metrics
            logger.info(
                f"Display metrics: {metrics.logical_width}x{metrics.logical_height} logical, "
                f"{metrics.physical_width}x{metrics.physical_height} physical, scale {metrics.scale_factor}"
            )
            return metrics

    async def context(self) -> CaptureContext:
        # Snapshot the target before awaiting so the context is consistent.
        target = self._target
        metrics = await self.display_metrics()
        return CaptureContext.from_target(target, metrics)
