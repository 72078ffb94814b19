from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from screen_relay.api.endpoints import healthz
from screen_relay.api.router import api_router
from screen_relay.core.errors import UpstreamUnavailable
from screen_relay.models.capture import DisplayMetrics, Point
from screen_relay.models.input import InputEventType
from screen_relay.services.broadcaster import Broadcaster
from screen_relay.services.capture_state import CaptureState
from screen_relay.services.coordinate_transform import CoordinateTransformer
from screen_relay.services.input_router import InputRouter
from screen_relay.services.signaling_store import SignalingStore

FAKE_JPEG = b"\xff\xd8FAKEJPEG\xff\xd9"

RETINA_METRICS = DisplayMetrics(
    logical_width=1920,
    logical_height=1080,
    physical_width=3840,
    physical_height=2160,
    scale_factor=2.0,
)


class FakeMetricsSource:
    def __init__(self, metrics: DisplayMetrics = RETINA_METRICS, *, fail: bool = False) -> None:
        self.metrics = metrics
        self.fail = fail
        self.calls = 0

    async def get_display_metrics(self) -> DisplayMetrics:
        self.calls += 1
        if self.fail:
            raise UpstreamUnavailable("GET /display failed: connection refused")
        return self.metrics


@dataclass
class InjectedCall:
    kind: str
    event_type: Optional[InputEventType] = None
    point: Optional[Point] = None
    key: Optional[str] = None
    modifiers: tuple[str, ...] = ()
    button: int = 0
    window_id: Optional[int] = None


@dataclass
class FakeInjector:
    fail: bool = False
    calls: list[InjectedCall] = field(default_factory=list)

    async def pointer(
        self,
        event_type: InputEventType,
        point: Point,
        *,
        button: int = 0,
        window_id: Optional[int] = None,
    ) -> bool:
        if self.fail:
            raise UpstreamUnavailable("POST /click failed")
        self.calls.append(
            InjectedCall(kind="pointer", event_type=event_type, point=point, button=button, window_id=window_id)
        )
        return True

    async def key(self, key: str, modifiers: tuple[str, ...], *, window_id: Optional[int] = None) -> bool:
        if self.fail:
            raise UpstreamUnavailable("POST /key failed")
        self.calls.append(InjectedCall(kind="key", key=key, modifiers=modifiers, window_id=window_id))
        return True


class FakeCaptureClient:
    """Records capture-target commands sent to the capture process."""

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[str, Any]] = []

    async def start_desktop_capture(self, *, display_index: int = 0) -> dict[str, Any]:
        if self.fail:
            raise UpstreamUnavailable("POST /capture returned 500")
        self.calls.append(("desktop", display_index))
        return {"status": "ok"}

    async def capture_window(self, window_id: int) -> dict[str, Any]:
        if self.fail:
            raise UpstreamUnavailable("POST /capture-window returned 500")
        self.calls.append(("window", window_id))
        return {"status": "ok"}


@dataclass(frozen=True)
class FakeSettings:
    window_list_tool: str = "/nonexistent/list_windows_cg"


@pytest.fixture
def fake_injector() -> FakeInjector:
    return FakeInjector()


@pytest.fixture
def fake_capture_client() -> FakeCaptureClient:
    return FakeCaptureClient()


@pytest.fixture
def app(fake_injector: FakeInjector, fake_capture_client: FakeCaptureClient) -> FastAPI:
    # Build an app without the production lifespan (no capture process, no ffmpeg).
    app = FastAPI()
    app.include_router(healthz.router, tags=["health"])
    app.include_router(api_router)

    broadcaster = Broadcaster(queue_size=4)
    # Late joiners get this frame first.
    broadcaster.broadcast(FAKE_JPEG)
    app.state.broadcaster = broadcaster

    capture_state = CaptureState(metrics_source=FakeMetricsSource())
    transformer = CoordinateTransformer(offset_x=0, offset_y=0)

    app.state.settings = FakeSettings()
    app.state.capture_state = capture_state
    app.state.transformer = transformer
    app.state.capture_client = fake_capture_client
    app.state.input_router = InputRouter(
        capture_state=capture_state,
        transformer=transformer,
        injector=fake_injector,
    )
    app.state.signaling_store = SignalingStore(session_ttl_sec=0)
    app.state.frame_source = None

    return app


@pytest.fixture
def client(app: FastAPI):
    # Ensure background threads started by TestClient are properly stopped.
    with TestClient(app) as c:
        yield c
