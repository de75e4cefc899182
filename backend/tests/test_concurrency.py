"""
Concurrency tests: the participant limit holds under simultaneous calls.

Every task opens its own session, the way concurrent API requests do.
"""

import asyncio

import pytest

from app.core.exceptions import ConflictError
from app.models.request import RequestStatus
from app.services.admission_service import update_request_statuses
from app.services.capacity_service import confirmed_count
from app.services.event_service import get_event
from app.services.request_service import cancel_request, create_request, list_event_requests


@pytest.mark.asyncio
async def test_concurrent_requests_never_overbook(session_factory, make_event, participants):
    """10 users race for 3 places of an unmoderated event."""
    limit = 3
    event = await make_event(participant_limit=limit, request_moderation=False)

    async def apply(user_id: int):
        async with session_factory() as session:
            return await create_request(session, user_id, event.id)

    results = await asyncio.gather(
        *(apply(p.id) for p in participants), return_exceptions=True
    )

    created = [r for r in results if not isinstance(r, Exception)]
    conflicts = [r for r in results if isinstance(r, ConflictError)]
    assert len(created) == limit
    assert len(conflicts) == len(participants) - limit
    assert all(r.status == RequestStatus.CONFIRMED.value for r in created)

    async with session_factory() as session:
        assert await confirmed_count(session, event.id) == limit
        assert (await get_event(session, event.id)).confirmed_requests == limit


@pytest.mark.asyncio
async def test_concurrent_admission_calls(session_factory, db_session, make_event, initiator, participants):
    """
    Three admission calls of two requests each race for two places: exactly
    two requests end CONFIRMED and every other one CANCELED.
    """
    limit = 2
    event = await make_event(participant_limit=limit, request_moderation=True)
    request_ids = [(await create_request(db_session, p.id, event.id)).id for p in participants[:6]]
    batches = [request_ids[0:2], request_ids[2:4], request_ids[4:6]]

    async def admit(batch: list[int]):
        async with session_factory() as session:
            return await update_request_statuses(
                session, initiator.id, event.id, batch, RequestStatus.CONFIRMED
            )

    results = await asyncio.gather(*(admit(b) for b in batches), return_exceptions=True)

    # One call fills the event; the others find their requests canceled
    assert sum(not isinstance(r, Exception) for r in results) == 1
    assert all(isinstance(r, ConflictError) for r in results if isinstance(r, Exception))

    async with session_factory() as session:
        statuses = [r.status for r in await list_event_requests(session, event.id)]
        assert statuses.count(RequestStatus.CONFIRMED.value) == limit
        assert statuses.count(RequestStatus.CANCELED.value) == len(request_ids) - limit
        assert await confirmed_count(session, event.id) == limit


@pytest.mark.asyncio
async def test_creation_and_admission_interleave(session_factory, db_session, make_event, initiator, participants):
    """Moderated requests keep arriving while the initiator confirms."""
    limit = 4
    event = await make_event(participant_limit=limit, request_moderation=True)
    early = [(await create_request(db_session, p.id, event.id)).id for p in participants[:3]]

    async def apply(user_id: int):
        async with session_factory() as session:
            return await create_request(session, user_id, event.id)

    async def admit():
        async with session_factory() as session:
            return await update_request_statuses(
                session, initiator.id, event.id, early, RequestStatus.CONFIRMED
            )

    await asyncio.gather(
        admit(), *(apply(p.id) for p in participants[3:]), return_exceptions=True
    )

    async with session_factory() as session:
        assert await confirmed_count(session, event.id) <= limit
        statuses = [r.status for r in await list_event_requests(session, event.id)]
        assert statuses[:3] == [RequestStatus.CONFIRMED.value] * 3


@pytest.mark.asyncio
async def test_concurrent_cancel_and_apply(session_factory, db_session, make_event, participants):
    """A place freed by a cancellation can be taken, never twice."""
    limit = 1
    event = await make_event(participant_limit=limit, request_moderation=False)
    holder = participants[0].id
    held_id = (await create_request(db_session, holder, event.id)).id

    async def cancel():
        async with session_factory() as session:
            return await cancel_request(session, holder, held_id)

    async def apply(user_id: int):
        async with session_factory() as session:
            return await create_request(session, user_id, event.id)

    await asyncio.gather(cancel(), *(apply(p.id) for p in participants[1:5]), return_exceptions=True)

    async with session_factory() as session:
        assert await confirmed_count(session, event.id) <= limit
        refreshed = await get_event(session, event.id)
        assert refreshed.confirmed_requests == await confirmed_count(session, event.id)
