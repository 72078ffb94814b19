"""Signaling session models."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class SessionState(str, Enum):
    """ネゴシエーションの進行状態 (created -> offer_received -> answer_sent)"""

    CREATED = "created"
    OFFER_RECEIVED = "offer_received"
    ANSWER_SENT = "answer_sent"

    @property
    def rank(self) -> int:
        return _STATE_ORDER.index(self)


_STATE_ORDER = [SessionState.CREATED, SessionState.OFFER_RECEIVED, SessionState.ANSWER_SENT]


@dataclass
class SignalingSession:
    """One peer-to-peer negotiation attempt."""

    id: str
    state: SessionState = SessionState.CREATED
    offer: Optional[Any] = None
    answer: Optional[Any] = None
    candidates: list[Any] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_activity: float = 0.0
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    def advance(self, state: SessionState) -> None:
        # Linear lifecycle: never move backwards.
        if state.rank > self.state.rank:
            self.state = state

    def to_dict(self) -> dict:
        return {
            "sessionId": self.id,
            "createdAt": self.created_at.isoformat(),
            "state": self.state.value,
            "offer": self.offer,
            "answer": self.answer,
            "candidates": list(self.candidates),
        }


@dataclass(frozen=True)
class PendingOffer:
    session_id: str
    offer: Any
    state: SessionState

    def to_dict(self) -> dict:
        return {"sessionId": self.session_id, "offer": self.offer, "state": self.state.value}
