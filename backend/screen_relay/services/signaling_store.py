"""シグナリングセッションストア - WebRTC offer/answer/ICE の中継

The store never creates SDP itself. It only keeps what the capture-side
browser and a viewer browser post over HTTP so the other side can fetch it.

Sessions move linearly through created -> offer_received -> answer_sent.
Sessions idle for longer than ``session_ttl_sec`` are evicted lazily on
access (``0`` keeps them forever). Appends to one session are serialized by
that session's lock; different sessions do not contend.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import time
from typing import Any, Callable, Optional
from uuid import uuid4

from screen_relay.core.errors import NotFoundError
from screen_relay.models.signaling import PendingOffer, SessionState, SignalingSession

logger = logging.getLogger(__name__)


class SignalingStore:
    def __init__(
        self,
        *,
        session_ttl_sec: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = float(session_ttl_sec)
        self._clock = clock

        self._sessions: dict[str, SignalingSession] = {}
        self._latest_offer_id: Optional[str] = None
        self._lock = asyncio.Lock()

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    async def create(self) -> str:
        async with self._lock:
            self._prune_expired_locked()
            session_id = uuid4().hex
            self._sessions[session_id] = SignalingSession(id=session_id, last_activity=self._clock())

        logger.info(f"Signaling session created: {session_id} (sessions={len(self._sessions)})")
        return session_id

    async def submit_offer(self, session_id: str, offer: Any) -> SignalingSession:
        session = await self._require(session_id)
        async with session.lock:
            session.offer = offer
            session.advance(SessionState.OFFER_RECEIVED)
            session.last_activity = self._clock()
        async with self._lock:
            self._latest_offer_id = session_id

        logger.info(f"Offer received for session {session_id}")
        return session

    async def submit_answer(self, session_id: str, answer: Any) -> SignalingSession:
        session = await self._require(session_id)
        async with session.lock:
            session.answer = answer
            session.advance(SessionState.ANSWER_SENT)
            session.last_activity = self._clock()

        logger.info(f"Answer received for session {session_id}")
        return session

    async def add_ice_candidate(self, session_id: str, candidate: Any) -> int:
        """Append a candidate; returns the new candidate count."""
        session = await self._require(session_id)
        async with session.lock:
            session.candidates.append(candidate)
            session.last_activity = self._clock()
            count = len(session.candidates)

        logger.debug(f"ICE candidate #{count} for session {session_id}")
        return count

    async def get(self, session_id: str) -> SignalingSession:
        """Return a snapshot of the session."""
        session = await self._require(session_id)
        async with session.lock:
            return SignalingSession(
                id=session.id,
                state=session.state,
                offer=copy.deepcopy(session.offer),
                answer=copy.deepcopy(session.answer),
                candidates=copy.deepcopy(session.candidates),
                created_at=session.created_at,
                last_activity=session.last_activity,
            )

    async def get_latest_pending_offer(self) -> Optional[PendingOffer]:
        async with self._lock:
            self._prune_expired_locked()
            if self._latest_offer_id is None:
                return None
            session = self._sessions.get(self._latest_offer_id)

        if session is None:
            return None
        async with session.lock:
            return PendingOffer(session_id=session.id, offer=session.offer, state=session.state)

    async def prune_expired(self) -> int:
        async with self._lock:
            return self._prune_expired_locked()

    async def _require(self, session_id: str) -> SignalingSession:
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is not None and self._is_expired(session):
                self._evict_locked(session_id)
                session = None
        if session is None:
            raise NotFoundError(f"Session {session_id} not found")
        return session

    def _is_expired(self, session: SignalingSession) -> bool:
        if self._ttl <= 0:
            return False
        return self._clock() - session.last_activity > self._ttl

    def _prune_expired_locked(self) -> int:
        if self._ttl <= 0:
            return 0
        expired = [sid for sid, s in self._sessions.items() if self._is_expired(s)]
        for sid in expired:
            self._evict_locked(sid)
        if expired:
            logger.info(f"Expired {len(expired)} signaling session(s) (sessions={len(self._sessions)})")
        return len(expired)

    def _evict_locked(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
        if self._latest_offer_id == session_id:
            self._latest_offer_id = None
