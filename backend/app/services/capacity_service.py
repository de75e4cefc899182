"""
Capacity counter for events with a participant limit.

CONSISTENCY STRATEGY
====================

confirmed_count() re-derives the number of CONFIRMED requests with a COUNT
query every time it is called. Admission and request creation call it *inside*
the event critical section (see interfaces/guard.py), after acquiring the
guard and inside the same transaction that will write the new statuses, so no
committed confirmation for that event can be missed and nothing is cached
between decisions.

The result is also written to Event.confirmed_requests by commit_confirmed(),
an explicit per-event aggregate used by read paths. That write is the
commit-time re-check:

    UPDATE events
       SET confirmed_requests = :new, version = version + 1
     WHERE id = :event_id
       AND version = :seen_version
       AND (participant_limit = 0 OR :new <= participant_limit)

  If rows_affected == 0, another process changed the event's capacity since
  we read it (or we are about to exceed the limit) -> the caller rolls back
  and retries with fresh data.

This keeps overbooking impossible even when the guard is only advisory
(Redis down, several workers on the local guard).
"""

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from app.models.event import Event
from app.models.request import ParticipationRequest, RequestStatus
from app.core.exceptions import OptimisticLockError
from app.core.logging import get_logger

logger = get_logger(__name__)


async def confirmed_count(db: AsyncSession, event_id: int) -> int:
    """Number of CONFIRMED requests for the event, read from the request rows."""
    result = await db.execute(
        select(func.count(ParticipationRequest.id)).where(
            ParticipationRequest.event_id == event_id,
            ParticipationRequest.status == RequestStatus.CONFIRMED.value,
        )
    )
    return result.scalar_one()


async def confirmed_counts(db: AsyncSession, event_ids: list[int]) -> dict[int, int]:
    """Confirmed counts for several events at once (read-side enrichment)."""
    counts = {event_id: 0 for event_id in event_ids}
    if not event_ids:
        return counts

    result = await db.execute(
        select(ParticipationRequest.event_id, func.count(ParticipationRequest.id))
        .where(
            ParticipationRequest.event_id.in_(event_ids),
            ParticipationRequest.status == RequestStatus.CONFIRMED.value,
        )
        .group_by(ParticipationRequest.event_id)
    )
    for event_id, count in result.all():
        counts[event_id] = count
    return counts


async def cancel_all_pending_for_event(db: AsyncSession, event_id: int) -> int:
    """
    Sellout side effect: every PENDING request of the event becomes CANCELED.

    Loaded request objects in the session are synchronized, so a caller that
    still iterates over them sees the new status.
    """
    # Status changes made earlier in this transaction must reach the rows first
    await db.flush()
    result = await db.execute(
        update(ParticipationRequest)
        .where(
            ParticipationRequest.event_id == event_id,
            ParticipationRequest.status == RequestStatus.PENDING.value,
        )
        .values(status=RequestStatus.CANCELED.value)
        .execution_options(synchronize_session="evaluate")
    )
    canceled = result.rowcount or 0
    logger.info("pending_requests_canceled", event_id=event_id, canceled=canceled)
    return canceled


async def commit_confirmed(db: AsyncSession, event: Event, new_count: int) -> None:
    """
    Write the confirmed aggregate guarded by the optimistic version check.

    Raises:
        OptimisticLockError: the event's capacity changed concurrently or the
            new count would exceed the participant limit.
    """
    seen_version = event.version
    result = await db.execute(
        update(Event)
        .where(
            Event.id == event.id,
            Event.version == seen_version,
            (Event.participant_limit == 0) | (Event.participant_limit >= new_count),
        )
        .values(confirmed_requests=new_count, version=Event.version + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.info(
            "capacity_version_conflict",
            event_id=event.id,
            seen_version=seen_version,
            new_count=new_count,
        )
        raise OptimisticLockError(f"Capacity of event id={event.id} changed concurrently")

    # Mirror the row on the loaded object without marking it dirty
    set_committed_value(event, "confirmed_requests", new_count)
    set_committed_value(event, "version", seen_version + 1)
