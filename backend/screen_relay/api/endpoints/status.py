"""Relay status endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Request

from screen_relay.api.schemas.status import StatusResponse

router = APIRouter()


@router.get("/status", response_model=StatusResponse, summary="Relay statistics")
async def get_status(request: Request) -> StatusResponse:
    state = request.app.state

    broadcaster = getattr(state, "broadcaster", None)
    frame_source = getattr(state, "frame_source", None)
    capture_state = getattr(state, "capture_state", None)
    input_router = getattr(state, "input_router", None)
    signaling_store = getattr(state, "signaling_store", None)

    target = capture_state.current() if capture_state is not None else None

    return StatusResponse(
        viewers=broadcaster.viewer_count if broadcaster else 0,
        frames_broadcast=broadcaster.stats.frames_broadcast if broadcaster else 0,
        frames_dropped=broadcaster.frames_dropped if broadcaster else 0,
        frame_source=frame_source.stats() if frame_source is not None else None,
        capture_mode=target.mode.value if target else "desktop",
        window_id=target.window_id if target else None,
        input_routed=input_router.events_routed if input_router else 0,
        input_failed=input_router.events_failed if input_router else 0,
        signaling_sessions=signaling_store.session_count if signaling_store else 0,
    )
