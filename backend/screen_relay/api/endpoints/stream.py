"""Viewer WebSocket endpoint.

WS /api/ws/stream

Protocol:
- server -> client (binary): JPEG frames, newest first on connect
- client -> server (text JSON): input events
    {"type": "click", "x": 812, "y": 440, "canvasWidth": 3840, "canvasHeight": 2160}
    {"type": "keydown", "key": "a", "modifiers": ["ctrl"]}
    {"type": "input", "data": {"type": "mousedown", "x": ..., "ctrlKey": false, ...}}
- server -> client (text JSON) on a malformed message:
    {"type": "error", "code": "MALFORMED_INPUT", "message": "..."}

Frames are sent by a per-viewer task so a slow input round trip never holds
back frame delivery.

Errors:
- 1011: Server not ready
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from fastapi import APIRouter, WebSocket
from starlette.websockets import WebSocketState

from screen_relay.core.errors import MalformedInput
from screen_relay.models.input import InputEvent
from screen_relay.services.broadcaster import Broadcaster, ViewerChannel
from screen_relay.services.input_router import InputRouter

logger = logging.getLogger(__name__)

router = APIRouter()


async def _send_frames(websocket: WebSocket, channel: ViewerChannel) -> None:
    try:
        async for frame in channel.frames():
            await websocket.send_bytes(frame)
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.debug(f"Viewer {channel.viewer_id} send stopped: {e}")
        return

    # Channel closed by the server (shutdown): close the socket as well.
    if websocket.client_state == WebSocketState.CONNECTED:
        with contextlib.suppress(Exception):
            await websocket.close(code=1000)


@router.websocket("/ws/stream")
async def websocket_stream(websocket: WebSocket) -> None:
    """JPEG フレーム配信 + 入力イベント受信"""

    await websocket.accept()

    app = websocket.scope.get("app")
    broadcaster: Broadcaster | None = getattr(app.state, "broadcaster", None) if app else None
    if broadcaster is None:
        await websocket.close(code=1011, reason="Server not ready")
        return

    input_router: InputRouter | None = getattr(app.state, "input_router", None) if app else None

    channel = broadcaster.connect()
    sender = asyncio.create_task(_send_frames(websocket, channel), name=f"viewer-send-{channel.viewer_id}")

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""

            try:
                event = InputEvent.parse(raw)
            except MalformedInput as e:
                logger.warning(f"Viewer {channel.viewer_id} sent malformed input: {e.message}")
                await websocket.send_json({"type": "error", "code": e.code, "message": e.message})
                continue

            if input_router is None:
                logger.debug("Input received but no input router is configured")
                continue

            await input_router.route(event)

    except Exception as e:
        logger.error(f"WebSocket error for viewer {channel.viewer_id}: {e}")
    finally:
        sender.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sender
        broadcaster.disconnect(channel)
        logger.info(f"Viewer {channel.viewer_id} stream ended")
