"""API schemas for signaling endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from screen_relay.models.signaling import SessionState


class CreateSessionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId", description="Opaque session token")


class OfferRequest(BaseModel):
    offer: Any = Field(description="SDP offer (RTCSessionDescriptionInit or raw SDP string)")


class AnswerRequest(BaseModel):
    answer: Any = Field(description="SDP answer")


class IceCandidateRequest(BaseModel):
    candidate: Any = Field(description="ICE candidate (RTCIceCandidateInit)")


class AckResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str = "ok"
    session_id: str = Field(alias="sessionId")
    state: SessionState
    candidates: int | None = Field(default=None, description="Candidate count after an ICE append")


class SessionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId")
    created_at: datetime = Field(alias="createdAt")
    state: SessionState
    offer: Any = None
    answer: Any = None
    candidates: list[Any] = Field(default_factory=list)


class LatestOfferResponse(BaseModel):
    """``{"offer": null}`` when no session has submitted an offer yet."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str | None = Field(default=None, alias="sessionId")
    offer: Any = None
    state: SessionState | None = None
