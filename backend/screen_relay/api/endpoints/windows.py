"""Window enumeration endpoint."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request

from screen_relay.services.window_list import WindowListError, list_windows

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/windows", summary="List capturable windows")
async def get_windows(request: Request) -> list[dict[str, Any]]:
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        raise HTTPException(status_code=503, detail="Server not ready")

    try:
        return await list_windows(settings.window_list_tool)
    except WindowListError as e:
        logger.error(f"Window list error: {e}")
        raise HTTPException(status_code=500, detail="Failed to get windows") from e
