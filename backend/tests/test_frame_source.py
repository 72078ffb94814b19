from __future__ import annotations

import asyncio

import pytest

from screen_relay.core.errors import UpstreamUnavailable
from screen_relay.services.broadcaster import Broadcaster
from screen_relay.services.frame_source import HttpFramePoller, ProcessFrameReader


class FakeFrameClient:
    def __init__(self, results: list) -> None:
        self._results = list(results)

    async def get_frame(self) -> bytes:
        result = self._results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


@pytest.mark.asyncio
async def test_poll_once_broadcasts_frames_and_skips_failures() -> None:
    broadcaster = Broadcaster()
    viewer = broadcaster.connect()
    client = FakeFrameClient([b"f1", UpstreamUnavailable("down"), b"", b"f2"])
    poller = HttpFramePoller(client, broadcaster)  # type: ignore[arg-type]

    assert await poller.poll_once() is True
    assert await poller.poll_once() is False
    assert await poller.poll_once() is False
    assert await poller.poll_once() is True

    assert poller.frames == 2
    assert poller.misses == 1

    viewer.close()
    assert [f async for f in viewer.frames()] == [b"f1", b"f2"]


@pytest.mark.asyncio
async def test_poller_start_stop() -> None:
    broadcaster = Broadcaster()
    client = FakeFrameClient([b"frame"] * 1000)
    poller = HttpFramePoller(client, broadcaster, interval_sec=0.001)  # type: ignore[arg-type]

    await poller.start()
    assert poller.is_running
    for _ in range(100):
        if broadcaster.latest_frame is not None:
            break
        await asyncio.sleep(0.005)
    await poller.stop()

    assert not poller.is_running
    assert broadcaster.latest_frame == b"frame"
    assert poller.stats()["kind"] == "http"


@pytest.mark.asyncio
async def test_process_reader_pump_splits_stream() -> None:
    broadcaster = Broadcaster(queue_size=8)
    viewer = broadcaster.connect()
    reader = ProcessFrameReader(["ffmpeg"], broadcaster, read_size=5)

    stream = asyncio.StreamReader()
    stream.feed_data(b"noise\xff\xd8one\xff\xd9\xff\xd8tw")
    stream.feed_data(b"o\xff\xd9\xff\xd8unfinished")
    stream.feed_eof()

    await reader.pump(stream)

    viewer.close()
    assert [f async for f in viewer.frames()] == [b"\xff\xd8one\xff\xd9", b"\xff\xd8two\xff\xd9"]

    stats = reader.stats()
    assert stats["kind"] == "process"
    assert stats["frames"] == 2
    assert stats["bufferedBytes"] == len(b"\xff\xd8unfinished")


def test_process_reader_requires_command() -> None:
    with pytest.raises(ValueError):
        ProcessFrameReader([], Broadcaster())


@pytest.mark.asyncio
async def test_process_reader_missing_binary_does_not_raise() -> None:
    reader = ProcessFrameReader(["/nonexistent/capture-binary"], Broadcaster())

    await reader.start()
    assert not reader.is_running
    await reader.stop()
