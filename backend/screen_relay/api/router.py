"""Top-level API router (prefixed under /api)."""

from __future__ import annotations

from fastapi import APIRouter

from screen_relay.api.endpoints import capture, signaling, status, stream, windows

api_router = APIRouter(prefix="/api")

api_router.include_router(stream.router, tags=["stream"])
api_router.include_router(capture.router, tags=["capture"])
api_router.include_router(windows.router, tags=["windows"])
api_router.include_router(signaling.router, tags=["signaling"])
api_router.include_router(status.router, tags=["status"])
