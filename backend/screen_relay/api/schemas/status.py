"""API schemas for health and relay status."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class HealthzResponse(BaseModel):
    status: str
    version: str


class StatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    viewers: int
    frames_broadcast: int = Field(alias="framesBroadcast")
    frames_dropped: int = Field(alias="framesDropped")
    frame_source: dict[str, Any] | None = Field(default=None, alias="frameSource")
    capture_mode: str = Field(alias="captureMode")
    window_id: int | None = Field(default=None, alias="windowId")
    input_routed: int = Field(default=0, alias="inputRouted")
    input_failed: int = Field(default=0, alias="inputFailed")
    signaling_sessions: int = Field(default=0, alias="signalingSessions")
