"""Capture target control endpoints.

- GET  /api/capture          current mode, window, display metrics, offsets
- POST /api/capture/desktop  start desktop capture on the capture process
- POST /api/capture/window   switch the capture process to one window
- POST /api/capture/reset    reset the relay state to desktop (no upstream call)
- GET  /api/display          display metrics (``?refresh=true`` drops the cache)

The relay state changes only after the capture process accepted the switch,
so clicks keep matching what viewers actually see.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, Request

from screen_relay.api.schemas.capture import (
    CaptureInfo,
    CaptureModeResponse,
    DisplayMetricsModel,
    SwitchWindowRequest,
)
from screen_relay.core.errors import UpstreamUnavailable
from screen_relay.services.capture_client import CaptureClient
from screen_relay.services.capture_state import CaptureState

logger = logging.getLogger(__name__)

router = APIRouter()


def _capture_state(request: Request) -> CaptureState:
    state = getattr(request.app.state, "capture_state", None)
    if state is None:
        raise HTTPException(status_code=503, detail="Server not ready")
    return state


def _capture_client(request: Request) -> CaptureClient:
    client = getattr(request.app.state, "capture_client", None)
    if client is None:
        raise HTTPException(status_code=503, detail="Capture process not configured")
    return client


@router.get("/capture", response_model=CaptureInfo, summary="Current capture target and coordinate info")
async def get_capture_info(request: Request) -> dict:
    capture_state = _capture_state(request)
    target = capture_state.current()
    metrics = await capture_state.display_metrics()

    transformer = getattr(request.app.state, "transformer", None)
    offsets = transformer.to_dict() if transformer is not None else {"x": 0, "y": 0}
    debug = bool(getattr(transformer, "debug", False))

    return {
        "mode": target.mode.value,
        "windowId": target.window_id,
        "displayMetrics": metrics.to_dict(),
        "offsets": offsets,
        "debug": debug,
    }


@router.post("/capture/desktop", response_model=CaptureModeResponse, summary="Capture the full desktop")
async def start_desktop_capture(request: Request) -> CaptureModeResponse:
    capture_state = _capture_state(request)
    client = _capture_client(request)

    try:
        await client.start_desktop_capture()
    except UpstreamUnavailable as e:
        logger.warning(f"Failed to start desktop capture: {e.message}")
        raise HTTPException(status_code=502, detail="Failed to start desktop capture") from e

    capture_state.reset_to_desktop()
    return CaptureModeResponse(status="desktop_capture_started", mode="desktop")


@router.post("/capture/window", response_model=CaptureModeResponse, summary="Capture a single window")
async def switch_window(body: SwitchWindowRequest, request: Request) -> CaptureModeResponse:
    window_id = body.resolved_window_id
    if window_id is None:
        raise HTTPException(status_code=400, detail="windowId required")

    capture_state = _capture_state(request)
    client = _capture_client(request)

    logger.info(f"Window selection: {window_id}")
    try:
        await client.capture_window(window_id)
    except UpstreamUnavailable as e:
        logger.warning(f"Failed to switch to window {window_id}: {e.message}")
        raise HTTPException(status_code=502, detail="Failed to switch to window capture") from e

    target = capture_state.switch_to_window(window_id)
    return CaptureModeResponse(
        status="window_capture_started",
        mode=target.mode.value,
        window_id=target.window_id,
        message=f"Successfully switched to window {window_id}",
    )


@router.post("/capture/reset", response_model=CaptureModeResponse, summary="Reset capture mode to desktop")
async def reset_capture_mode(request: Request) -> CaptureModeResponse:
    _capture_state(request).reset_to_desktop()
    return CaptureModeResponse(status="reset", mode="desktop")


@router.get("/display", response_model=DisplayMetricsModel, summary="Display metrics of the capture source")
async def get_display(
    request: Request,
    refresh: bool = Query(default=False, description="Drop the cached metrics and fetch again"),
) -> dict:
    capture_state = _capture_state(request)
    if refresh:
        capture_state.invalidate_display_metrics()
    metrics = await capture_state.display_metrics()
    return metrics.to_dict()
