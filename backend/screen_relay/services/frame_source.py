"""Frame sources feeding the broadcaster.

- HttpFramePoller: GET /frame on the native capture process every ~33 ms.
- ProcessFrameReader: run a capture command (ffmpeg image2pipe) and split its
  stdout into JPEG frames with FrameDemuxer.

Upstream failures never reach viewers: the tick is skipped and the next one
tries again. Restarting a crashed capture process is out of scope here.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional, Protocol

from screen_relay.core.errors import UpstreamUnavailable
from screen_relay.services.broadcaster import Broadcaster
from screen_relay.services.capture_client import CaptureClient
from screen_relay.services.frame_demuxer import DEFAULT_MAX_BUFFER_BYTES, FrameDemuxer

logger = logging.getLogger(__name__)


class FrameSource(Protocol):
    kind: str

    @property
    def is_running(self) -> bool: ...

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    def stats(self) -> dict: ...


class HttpFramePoller:
    """ネイティブキャプチャサーバの /frame をポーリングして配信する"""

    kind = "http"

    def __init__(
        self,
        client: CaptureClient,
        broadcaster: Broadcaster,
        *,
        interval_sec: float = 0.033,
    ) -> None:
        self._client = client
        self._broadcaster = broadcaster
        self._interval = float(interval_sec)
        self._task: Optional[asyncio.Task[None]] = None

        self.frames = 0
        self.misses = 0
        self._upstream_ok = True

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run(), name="frame-poller")
        logger.info(f"HTTP frame polling started ({1 / self._interval:.0f} fps)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info(f"HTTP frame polling stopped: {self.frames} frames, {self.misses} misses")

    async def poll_once(self) -> bool:
        """Fetch and broadcast one frame. Returns False if the tick was skipped."""
        try:
            frame = await self._client.get_frame()
        except UpstreamUnavailable as e:
            self.misses += 1
            if self._upstream_ok:
                # Log once per outage, not once per tick.
                logger.warning(f"Capture process not answering, skipping frames: {e.message}")
                self._upstream_ok = False
            return False

        if not self._upstream_ok:
            logger.info(f"Capture process back after {self.misses} missed frame(s)")
            self._upstream_ok = True

        if not frame:
            return False

        self.frames += 1
        self._broadcaster.broadcast(frame)
        return True

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            started = loop.time()
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Frame poll error: {e}")

            elapsed = loop.time() - started
            await asyncio.sleep(max(0.0, self._interval - elapsed))

    def stats(self) -> dict:
        return {"kind": self.kind, "running": self.is_running, "frames": self.frames, "misses": self.misses}


class ProcessFrameReader:
    """キャプチャコマンドの stdout (MJPEG) をフレームに分割して配信する"""

    kind = "process"

    def __init__(
        self,
        command: list[str],
        broadcaster: Broadcaster,
        *,
        max_buffer_bytes: int = DEFAULT_MAX_BUFFER_BYTES,
        read_size: int = 64 * 1024,
    ) -> None:
        if not command:
            raise ValueError("capture command must not be empty")
        self.command = list(command)
        self._broadcaster = broadcaster
        self._read_size = int(read_size)
        self.demuxer = FrameDemuxer(on_frame=broadcaster.broadcast, max_buffer_bytes=max_buffer_bytes)

        self._proc: Optional[asyncio.subprocess.Process] = None
        self._task_read: Optional[asyncio.Task[None]] = None
        self._task_stderr: Optional[asyncio.Task[None]] = None

    @property
    def is_running(self) -> bool:
        return self._proc is not None and self._proc.returncode is None

    async def start(self) -> None:
        if self._proc is not None:
            return

        logger.info(f"Starting capture process: {' '.join(self.command)}")
        try:
            self._proc = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            # No frames until the command is fixed; the relay itself keeps running.
            logger.error(f"Could not start capture process {self.command[0]}: {e}")
            self._proc = None
            return

        assert self._proc.stdout is not None
        assert self._proc.stderr is not None
        self._task_read = asyncio.create_task(self.pump(self._proc.stdout), name="capture-read")
        self._task_stderr = asyncio.create_task(self._log_stderr(self._proc.stderr), name="capture-stderr")

    async def stop(self) -> None:
        if self._proc is None:
            return

        logger.info("Stopping capture process")
        for task in (self._task_read, self._task_stderr):
            if task is not None:
                task.cancel()

        if self._proc.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                self._proc.terminate()
            try:
                await asyncio.wait_for(self._proc.wait(), timeout=3.0)
            except asyncio.TimeoutError:
                self._proc.kill()
                await self._proc.wait()

        self._proc = None
        self._task_read = None
        self._task_stderr = None

    async def pump(self, stream: asyncio.StreamReader) -> None:
        """Read ``stream`` until EOF, broadcasting every complete frame."""
        reads = 0
        try:
            while True:
                chunk = await stream.read(self._read_size)
                if not chunk:
                    logger.warning(
                        f"Capture stream EOF after {reads} reads, {self.demuxer.bytes_fed} bytes, "
                        f"{self.demuxer.frames_emitted} frames"
                    )
                    break
                reads += 1
                self.demuxer.feed(chunk)
                if reads <= 3 or reads % 500 == 0:
                    logger.debug(
                        f"Capture read #{reads}: chunk={len(chunk)} buffered={self.demuxer.buffered_bytes} "
                        f"frames={self.demuxer.frames_emitted}"
                    )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Capture read loop error: {e}")

    async def _log_stderr(self, stream: asyncio.StreamReader) -> None:
        try:
            while True:
                line = await stream.readline()
                if not line:
                    break
                logger.debug(f"capture stderr: {line.decode('utf-8', errors='ignore').rstrip()}")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Capture stderr loop error: {e}")

    def stats(self) -> dict:
        return {
            "kind": self.kind,
            "running": self.is_running,
            "frames": self.demuxer.frames_emitted,
            "bytes": self.demuxer.bytes_fed,
            "bufferedBytes": self.demuxer.buffered_bytes,
            "overruns": self.demuxer.overruns,
        }
