from __future__ import annotations

import json

import httpx
import pytest

from screen_relay.core.errors import UpstreamUnavailable
from screen_relay.models.capture import DisplayMetrics
from screen_relay.services.capture_client import CaptureClient


class Recorder:
    def __init__(self, responder=None) -> None:
        self.requests: list[httpx.Request] = []
        self._responder = responder or (lambda request: httpx.Response(200, json={"status": "ok"}))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responder(request)

    def body(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)


def _client(recorder: Recorder) -> CaptureClient:
    return CaptureClient("http://capture.test", transport=httpx.MockTransport(recorder))


@pytest.mark.asyncio
async def test_get_frame_returns_body() -> None:
    recorder = Recorder(lambda request: httpx.Response(200, content=b"\xff\xd8jpeg\xff\xd9"))
    async with _client(recorder) as client:
        assert await client.get_frame() == b"\xff\xd8jpeg\xff\xd9"
    assert recorder.requests[0].url.path == "/frame"


@pytest.mark.asyncio
async def test_get_display_metrics_parses_payload() -> None:
    payload = {"width": 1512, "height": 982, "physicalWidth": 3024, "physicalHeight": 1964, "scaleFactor": 2}
    recorder = Recorder(lambda request: httpx.Response(200, json=payload))
    async with _client(recorder) as client:
        metrics = await client.get_display_metrics()

    assert metrics == DisplayMetrics(
        logical_width=1512,
        logical_height=982,
        physical_width=3024,
        physical_height=1964,
        scale_factor=2.0,
    )


@pytest.mark.asyncio
async def test_invalid_display_payload_raises_value_error() -> None:
    recorder = Recorder(lambda request: httpx.Response(200, json={"height": 10}))
    async with _client(recorder) as client:
        with pytest.raises(ValueError):
            await client.get_display_metrics()


@pytest.mark.asyncio
async def test_click_global_and_window() -> None:
    recorder = Recorder()
    async with _client(recorder) as client:
        await client.click(406, 220)
        await client.click(10, 20, window_id=4242)

    assert recorder.requests[0].url.path == "/click"
    assert recorder.body(0) == {"x": 406, "y": 220}
    assert recorder.requests[1].url.path == "/click-window"
    assert recorder.body(1) == {"x": 10, "y": 20, "cgWindowID": 4242}


@pytest.mark.asyncio
async def test_key_global_and_window() -> None:
    recorder = Recorder()
    async with _client(recorder) as client:
        await client.key("a", ["ctrl"])
        await client.key("Return", [], window_id=7)

    assert recorder.requests[0].url.path == "/key"
    assert recorder.body(0) == {"key": "a", "modifiers": ["ctrl"]}
    assert recorder.requests[1].url.path == "/key-window"
    assert recorder.body(1) == {"key": "Return", "modifiers": [], "cgWindowID": 7}


@pytest.mark.asyncio
async def test_capture_target_commands() -> None:
    recorder = Recorder()
    async with _client(recorder) as client:
        await client.start_desktop_capture()
        await client.capture_window(555)

    assert recorder.requests[0].url.path == "/capture"
    assert recorder.body(0) == {"type": 0, "index": 0, "vp9": False}
    assert recorder.requests[1].url.path == "/capture-window"
    assert recorder.body(1) == {"cgWindowID": 555, "vp9": False}


@pytest.mark.asyncio
async def test_error_status_raises_upstream_unavailable() -> None:
    recorder = Recorder(lambda request: httpx.Response(500, text="boom"))
    async with _client(recorder) as client:
        with pytest.raises(UpstreamUnavailable) as exc:
            await client.click(1, 1)
    assert exc.value.code == "UPSTREAM_UNAVAILABLE"


@pytest.mark.asyncio
async def test_transport_error_raises_upstream_unavailable() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(Recorder(refuse)) as client:
        with pytest.raises(UpstreamUnavailable):
            await client.get_frame()
