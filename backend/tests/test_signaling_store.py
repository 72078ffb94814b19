from __future__ import annotations

import asyncio

import pytest

from screen_relay.core.errors import NotFoundError
from screen_relay.models.signaling import SessionState
from screen_relay.services.signaling_store import SignalingStore


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.asyncio
async def test_create_returns_unique_ids() -> None:
    store = SignalingStore()
    ids = {await store.create() for _ in range(20)}

    assert len(ids) == 20
    assert store.session_count == 20

    session = await store.get(next(iter(ids)))
    assert session.state == SessionState.CREATED
    assert session.offer is None
    assert session.candidates == []


@pytest.mark.asyncio
async def test_full_negotiation_flow() -> None:
    store = SignalingStore()
    sid = await store.create()

    offer = {"type": "offer", "sdp": "v=0..."}
    await store.submit_offer(sid, offer)

    pending = await store.get_latest_pending_offer()
    assert pending is not None
    assert pending.session_id == sid
    assert pending.offer == offer
    assert pending.state == SessionState.OFFER_RECEIVED

    await store.submit_answer(sid, {"type": "answer", "sdp": "v=0 answer"})
    assert await store.add_ice_candidate(sid, {"candidate": "c1"}) == 1
    assert await store.add_ice_candidate(sid, {"candidate": "c2"}) == 2

    session = await store.get(sid)
    assert session.state == SessionState.ANSWER_SENT
    assert session.answer == {"type": "answer", "sdp": "v=0 answer"}
    assert session.candidates == [{"candidate": "c1"}, {"candidate": "c2"}]


@pytest.mark.asyncio
async def test_latest_offer_none_when_nothing_offered() -> None:
    store = SignalingStore()
    await store.create()
    assert await store.get_latest_pending_offer() is None


@pytest.mark.asyncio
async def test_latest_offer_is_most_recent_submission() -> None:
    store = SignalingStore()
    first = await store.create()
    second = await store.create()

    await store.submit_offer(second, "sdp-2")
    await store.submit_offer(first, "sdp-1")

    pending = await store.get_latest_pending_offer()
    assert pending is not None
    assert pending.session_id == first
    assert pending.offer == "sdp-1"


@pytest.mark.asyncio
async def test_state_never_moves_backwards() -> None:
    store = SignalingStore()
    sid = await store.create()

    await store.submit_answer(sid, "answer")
    await store.submit_offer(sid, "late offer")

    session = await store.get(sid)
    assert session.state == SessionState.ANSWER_SENT
    assert session.offer == "late offer"


@pytest.mark.asyncio
async def test_unknown_session_raises_not_found() -> None:
    store = SignalingStore()

    with pytest.raises(NotFoundError):
        await store.submit_offer("nope", "sdp")
    with pytest.raises(NotFoundError):
        await store.submit_answer("nope", "sdp")
    with pytest.raises(NotFoundError):
        await store.add_ice_candidate("nope", {})
    with pytest.raises(NotFoundError) as exc:
        await store.get("nope")
    assert exc.value.code == "NOT_FOUND"


@pytest.mark.asyncio
async def test_get_returns_snapshot() -> None:
    store = SignalingStore()
    sid = await store.create()
    await store.add_ice_candidate(sid, {"candidate": "c1"})

    snapshot = await store.get(sid)
    snapshot.candidates.append({"candidate": "injected"})

    assert (await store.get(sid)).candidates == [{"candidate": "c1"}]


@pytest.mark.asyncio
async def test_concurrent_ice_appends_are_not_lost() -> None:
    store = SignalingStore()
    sid = await store.create()

    counts = await asyncio.gather(*(store.add_ice_candidate(sid, {"i": i}) for i in range(50)))

    assert sorted(counts) == list(range(1, 51))
    session = await store.get(sid)
    assert sorted(c["i"] for c in session.candidates) == list(range(50))


@pytest.mark.asyncio
async def test_idle_sessions_expire() -> None:
    clock = FakeClock()
    store = SignalingStore(session_ttl_sec=60, clock=clock)

    sid = await store.create()
    await store.submit_offer(sid, "sdp")

    clock.now += 30
    await store.add_ice_candidate(sid, {})

    # Activity refreshed the session
    clock.now += 45
    assert (await store.get(sid)).state == SessionState.OFFER_RECEIVED

    clock.now += 61
    assert await store.get_latest_pending_offer() is None
    with pytest.raises(NotFoundError):
        await store.get(sid)
    assert store.session_count == 0


@pytest.mark.asyncio
async def test_zero_ttl_keeps_sessions_forever() -> None:
    clock = FakeClock()
    store = SignalingStore(session_ttl_sec=0, clock=clock)
    sid = await store.create()

    clock.now += 10**9
    assert await store.prune_expired() == 0
    assert (await store.get(sid)).id == sid
