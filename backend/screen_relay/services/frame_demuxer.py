"""MJPEG byte stream demultiplexer.

The capture subprocess (ffmpeg ``-f image2pipe -vcodec mjpeg``) writes JPEG
images back to back on stdout without any length prefix. Frames are recovered
by scanning for the SOI (FF D8) and EOI (FF D9) markers.

Incomplete data at the end of a chunk stays buffered until the next ``feed``.
The buffer is bounded: if a frame never completes, the demuxer discards up to
the next SOI marker and carries on.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

SOI = b"\xff\xd8"
EOI = b"\xff\xd9"

DEFAULT_MAX_BUFFER_BYTES = 8 * 1024 * 1024


def extract_complete_jpegs(buf: bytearray, scanned: int = 0) -> list[bytes]:
    """Pop every complete JPEG from ``buf`` (in place) and return them in order.

    After the call ``buf`` starts either at an unmatched SOI marker or at the
    first byte that has not been scanned yet.

    ``scanned`` is the length ``buf`` had after the previous call. Those bytes
    hold no EOI for a pending frame, so the EOI search resumes just before
    them instead of rescanning a large partial frame on every chunk.
    """
    frames: list[bytes] = []
    pos = 0
    while True:
        start = buf.find(SOI, pos)
        if start == -1:
            break

        # EOI search starts after the SOI so the two markers never overlap.
        end = buf.find(EOI, max(start + 2, scanned - 1))
        if end == -1:
            # Bytes before the SOI belong to no frame.
            pos = start
            break

        frames.append(bytes(buf[start : end + 2]))
        pos = end + 2

    if pos > 0:
        del buf[:pos]
    return frames


class FrameDemuxer:
    """Splits a continuous MJPEG byte stream into individual frames.

    Examples:
        demuxer = FrameDemuxer(on_frame=broadcaster.broadcast)
        while chunk := await proc.stdout.read(64 * 1024):
            demuxer.feed(chunk)
    """

    def __init__(
        self,
        on_frame: Optional[Callable[[bytes], object]] = None,
        *,
        max_buffer_bytes: int = DEFAULT_MAX_BUFFER_BYTES,
    ) -> None:
        self._buf = bytearray()
        self._on_frame = on_frame
        self._max = int(max_buffer_bytes)

        self.frames_emitted = 0
        self.bytes_fed = 0
        self.overruns = 0

    @property
    def buffered_bytes(self) -> int:
        return len(self._buf)

    @property
    def pending(self) -> bytes:
        """Bytes not yet resolved into a frame."""
        return bytes(self._buf)

    def feed(self, chunk: bytes) -> list[bytes]:
        """Append ``chunk`` and return the frames it completed.

        Each frame is also passed to ``on_frame`` (if set) before this returns.
        """
        scanned = len(self._buf)
        if chunk:
            self._buf.extend(chunk)
            self.bytes_fed += len(chunk)

        frames = extract_complete_jpegs(self._buf, scanned)
        while len(self._buf) > self._max:
            self._resync()
            frames.extend(extract_complete_jpegs(self._buf))

        for frame in frames:
            self.frames_emitted += 1
            if self._on_frame is not None:
                self._on_frame(frame)
        return frames

    def reset(self) -> None:
        self._buf.clear()

    def _resync(self) -> None:
        buf = self._buf
        size = len(buf)
        self.overruns += 1

        # Skip the stalled frame: jump to the next SOI after the current one.
        nxt = buf.find(SOI, 1)
        if nxt == -1:
            # Keep a trailing 0xFF, it may be the first half of the next SOI.
            keep = 1 if buf.endswith(b"\xff") else 0
            del buf[: size - keep]
        else:
            del buf[:nxt]

        logger.warning(
            f"Frame buffer overrun ({size} bytes > {self._max}), "
            f"discarded {size - len(buf)} bytes to resync (overruns={self.overruns})"
        )
