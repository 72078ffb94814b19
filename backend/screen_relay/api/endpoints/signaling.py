"""Signaling endpoints for the peer-to-peer (WebRTC) transport.

The relay only stores and hands over negotiation data:

1. capture side: POST /api/signaling/sessions            -> {sessionId}
2. capture side: POST /api/signaling/sessions/{id}/offer  {offer}
3. viewer:       GET  /api/signaling/offer/latest         -> {sessionId, offer, state}
4. viewer:       POST /api/signaling/sessions/{id}/answer {answer}
5. both:         POST /api/signaling/sessions/{id}/ice    {candidate}
6. capture side: GET  /api/signaling/sessions/{id}        -> answer + candidates

Unknown session ids answer 400 on writes and 404 on reads.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request

from screen_relay.api.schemas.signaling import (
    AckResponse,
    AnswerRequest,
    CreateSessionResponse,
    IceCandidateRequest,
    LatestOfferResponse,
    OfferRequest,
    SessionResponse,
)
from screen_relay.core.errors import NotFoundError
from screen_relay.services.signaling_store import SignalingStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/signaling")


def _store(request: Request) -> SignalingStore:
    store = getattr(request.app.state, "signaling_store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Server not ready")
    return store


@router.post("/sessions", response_model=CreateSessionResponse, summary="Create a signaling session")
async def create_session(request: Request) -> CreateSessionResponse:
    session_id = await _store(request).create()
    return CreateSessionResponse(session_id=session_id)


@router.post("/sessions/{session_id}/offer", response_model=AckResponse, summary="Submit an SDP offer")
async def submit_offer(session_id: str, body: OfferRequest, request: Request) -> AckResponse:
    try:
        session = await _store(request).submit_offer(session_id, body.offer)
    except NotFoundError as e:
        raise HTTPException(status_code=400, detail=e.message) from e
    return AckResponse(session_id=session.id, state=session.state)


@router.post("/sessions/{session_id}/answer", response_model=AckResponse, summary="Submit an SDP answer")
async def submit_answer(session_id: str, body: AnswerRequest, request: Request) -> AckResponse:
    try:
        session = await _store(request).submit_answer(session_id, body.answer)
    except NotFoundError as e:
        raise HTTPException(status_code=400, detail=e.message) from e
    return AckResponse(session_id=session.id, state=session.state)


@router.post("/sessions/{session_id}/ice", response_model=AckResponse, summary="Add an ICE candidate")
async def add_ice_candidate(session_id: str, body: IceCandidateRequest, request: Request) -> AckResponse:
    store = _store(request)
    try:
        count = await store.add_ice_candidate(session_id, body.candidate)
        session = await store.get(session_id)
    except NotFoundError as e:
        raise HTTPException(status_code=400, detail=e.message) from e
    return AckResponse(session_id=session_id, state=session.state, candidates=count)


@router.get("/sessions/{session_id}", response_model=SessionResponse, summary="Get a signaling session")
async def get_session(session_id: str, request: Request) -> dict:
    try:
        session = await _store(request).get(session_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message) from e
    return session.to_dict()


@router.get(
    "/offer/latest",
    response_model=LatestOfferResponse,
    response_model_exclude_unset=True,
    summary="Most recently offered session",
)
async def get_latest_offer(request: Request) -> LatestOfferResponse:
    pending = await _store(request).get_latest_pending_offer()
    if pending is None:
        return LatestOfferResponse(offer=None)
    return LatestOfferResponse(session_id=pending.session_id, offer=pending.offer, state=pending.state)
