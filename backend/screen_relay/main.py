"""Screen Relay Backend - FastAPI Application

キャプチャプロセスとブラウザのビューアを中継するバックエンド。

- JPEG フレームの取得 (HTTP ポーリング or キャプチャコマンドの stdout) と全ビューアへの配信
- ビューアからの入力イベントを座標変換してキャプチャプロセスへ転送 (/api/ws/stream)
- デスクトップ / ウィンドウのキャプチャ対象切り替え (/api/capture)
- WebRTC シグナリング情報の保管 (/api/signaling)

API ドキュメントは FastAPI の OpenAPI 生成を活用し、`/docs` で確認できる。
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from screen_relay.api.endpoints import healthz
from screen_relay.api.router import api_router
from screen_relay.core.config import Settings, load_settings
from screen_relay.core.logging import configure_logging
from screen_relay.services.broadcaster import Broadcaster
from screen_relay.services.capture_client import CaptureClient
from screen_relay.services.capture_state import CaptureState
from screen_relay.services.coordinate_transform import CoordinateTransformer
from screen_relay.services.frame_source import FrameSource, HttpFramePoller, ProcessFrameReader
from screen_relay.services.input_injector import InputInjector, NativeInjector, XdotoolInjector
from screen_relay.services.input_router import InputRouter
from screen_relay.services.signaling_store import SignalingStore

logger = logging.getLogger(__name__)


def _build_injector(settings: Settings, client: CaptureClient) -> InputInjector:
    if settings.input_backend == "xdotool":
        return XdotoolInjector(display=settings.x_display)
    return NativeInjector(client)


def _build_frame_source(
    settings: Settings, client: CaptureClient, broadcaster: Broadcaster
) -> Optional[FrameSource]:
    if settings.frame_source == "http":
        return HttpFramePoller(client, broadcaster, interval_sec=settings.frame_poll_interval_sec)
    if settings.frame_source == "process":
        return ProcessFrameReader(
            settings.capture_command,
            broadcaster,
            max_buffer_bytes=settings.demux_max_buffer_bytes,
        )
    return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = load_settings()
    app.state.settings = settings

    logger.info("Starting services...")
    logger.info(f"Capture process: {settings.capture_api_url}")
    logger.info(f"Frame source: {settings.frame_source}, input backend: {settings.input_backend}")

    client = CaptureClient(settings.capture_api_url, timeout_sec=settings.upstream_timeout_sec)
    app.state.capture_client = client

    capture_state = CaptureState(metrics_source=client)
    app.state.capture_state = capture_state

    transformer = CoordinateTransformer(
        offset_x=settings.click_offset_x,
        offset_y=settings.click_offset_y,
        default_scale_factor=settings.default_scale_factor,
        debug=settings.debug_coords,
    )
    app.state.transformer = transformer

    broadcaster = Broadcaster(queue_size=settings.viewer_queue_size)
    app.state.broadcaster = broadcaster

    app.state.input_router = InputRouter(
        capture_state=capture_state,
        transformer=transformer,
        injector=_build_injector(settings, client),
    )
    app.state.signaling_store = SignalingStore(session_ttl_sec=settings.signaling_session_ttl_sec)

    frame_source = _build_frame_source(settings, client, broadcaster)
    app.state.frame_source = frame_source
    if frame_source is not None:
        await frame_source.start()

    yield

    logger.info("Stopping services...")
    if frame_source is not None:
        await frame_source.stop()
    broadcaster.close_all()
    await client.aclose()


def create_app() -> FastAPI:
    settings = load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Screen Relay",
        description="画面ストリーム中継 & リモート入力サーバ",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        openapi_tags=[
            {"name": "health", "description": "Health check"},
            {"name": "stream", "description": "WebSocket JPEG streaming and input"},
            {"name": "capture", "description": "Capture target control"},
            {"name": "windows", "description": "Window enumeration"},
            {"name": "signaling", "description": "WebRTC signaling"},
            {"name": "status", "description": "Relay statistics"},
        ],
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # root level
    app.include_router(healthz.router, tags=["health"])

    # /api
    app.include_router(api_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
