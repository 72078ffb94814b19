"""Frame fan-out to connected viewers.

Every viewer owns a small bounded queue. ``broadcast`` only enqueues
(``put_nowait``) so a slow viewer can never stall capture or other viewers.
When a viewer's queue is full the oldest frame is dropped.

New viewers are primed with the most recent frame so the canvas is not blank
until the next capture tick.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Optional

logger = logging.getLogger(__name__)

_CLOSED = None


class ViewerChannel:
    """Outbound frame queue of one viewer connection."""

    def __init__(self, viewer_id: int, *, maxsize: int = 4) -> None:
        self.viewer_id = viewer_id
        self._queue: asyncio.Queue[Optional[bytes]] = asyncio.Queue(maxsize=max(1, maxsize))
        self._open = True

        self.frames_offered = 0
        self.frames_dropped = 0

    @property
    def is_open(self) -> bool:
        return self._open

    def offer(self, frame: bytes) -> bool:
        """Enqueue without blocking. Returns False if the channel is closed."""
        if not self._open:
            return False
        self._put_dropping_oldest(frame)
        self.frames_offered += 1
        return True

    def close(self) -> None:
        if not self._open:
            return
        self._open = False
        self._put_dropping_oldest(_CLOSED)

    async def frames(self) -> AsyncIterator[bytes]:
        """Yield queued frames until the channel is closed."""
        while True:
            frame = await self._queue.get()
            if frame is _CLOSED:
                break
            yield frame

    def _put_dropping_oldest(self, item: Optional[bytes]) -> None:
        while True:
            try:
                self._queue.put_nowait(item)
                return
            except asyncio.QueueFull:
                try:
                    self._queue.get_nowait()
                    self.frames_dropped += 1
                except asyncio.QueueEmpty:
                    pass


@dataclass
class BroadcastStats:
    frames_broadcast: int = 0
    deliveries: int = 0
    viewer_count: int = 0


class Broadcaster:
    """全ビューアへフレームを配信する (fire-and-forget)"""

    def __init__(self, *, queue_size: int = 4, prime_new_viewers: bool = True) -> None:
        self._queue_size = int(queue_size)
        self._prime = prime_new_viewers
        self._viewers: list[ViewerChannel] = []
        self._ids = itertools.count(1)
        self._latest_frame: Optional[bytes] = None
        self._stats = BroadcastStats()
        self._dropped_by_closed = 0

    @property
    def viewer_count(self) -> int:
        return len(self._viewers)

    @property
    def latest_frame(self) -> Optional[bytes]:
        return self._latest_frame

    @property
    def stats(self) -> BroadcastStats:
        self._stats.viewer_count = len(self._viewers)
        return self._stats

    @property
    def frames_dropped(self) -> int:
        return self._dropped_by_closed + sum(v.frames_dropped for v in list(self._viewers))

    def connect(self) -> ViewerChannel:
        channel = ViewerChannel(next(self._ids), maxsize=self._queue_size)
        if self._prime and self._latest_frame is not None:
            channel.offer(self._latest_frame)
        self._viewers.append(channel)
        logger.info(f"Viewer {channel.viewer_id} connected. Total: {len(self._viewers)}")
        return channel

    def disconnect(self, channel: ViewerChannel) -> None:
        channel.close()
        if channel in self._viewers:
            self._viewers.remove(channel)
            self._dropped_by_closed += channel.frames_dropped
        logger.info(
            f"Viewer {channel.viewer_id} disconnected. Total: {len(self._viewers)} "
            f"(offered={channel.frames_offered}, dropped={channel.frames_dropped})"
        )

    def broadcast(self, frame: bytes) -> int:
        """Offer ``frame`` to every open viewer; returns the delivery count.

        Never raises: closed viewers are skipped and a failing viewer does not
        affect the others.
        """
        self._latest_frame = frame
        self._stats.frames_broadcast += 1

        delivered = 0
        for viewer in list(self._viewers):
            if not viewer.is_open:
                continue
            try:
                if viewer.offer(frame):
                    delivered += 1
            except Exception as e:
                logger.warning(f"Failed to offer frame to viewer {getattr(viewer, 'viewer_id', '?')}: {e}")

        self._stats.deliveries += delivered
        if self._stats.frames_broadcast % 300 == 1:
            logger.debug(
                f"Broadcast frame #{self._stats.frames_broadcast} ({len(frame)} bytes) to {delivered} viewer(s)"
            )
        return delivered

    def close_all(self) -> None:
        for viewer in list(self._viewers):
            self.disconnect(viewer)
