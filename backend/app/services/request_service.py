"""
Participation request service: creation, cancellation and listings.

CONCURRENCY STRATEGY: Guarded section + optimistic re-check
===========================================================

Problem:
  Two users apply for the last place of an event without moderation.
  Both count one free place, both get CONFIRMED. Result: overbooking.

Solution:
  1. Enter the event's capacity guard (capacity_key), shared with the
     admission controller, so creation and admission never interleave
  2. Re-read the event and COUNT confirmed requests inside the guard
  3. Write the aggregate with commit_confirmed(), which fails when the event
     version moved (another worker without the same guard got there first)
  4. On such a conflict roll back and retry, up to MAX_ADMISSION_RETRIES

  Cancellation frees a place but never promotes a PENDING request; the
  initiator decides who takes it.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.event import Event, EventState
from app.models.request import ParticipationRequest, RequestStatus
from app.services.capacity_service import commit_confirmed, confirmed_count
from app.services.event_service import get_event
from app.services.interfaces.guard import capacity_key
from app.services.strategy_factory import get_event_guard
from app.services.user_service import ensure_user_exists
from app.core.clock import utcnow
from app.core.config import get_settings
from app.core.exceptions import AccessError, ConflictError, NotFoundError, OptimisticLockError
from app.core.logging import event_log_context, get_logger
from app.core.metrics import db_retries, record_request_creation

logger = get_logger(__name__)
settings = get_settings()

# Anything but CANCELED blocks a new request; a rejection stands
ACTIVE_STATUSES = (
    RequestStatus.PENDING.value,
    RequestStatus.CONFIRMED.value,
    RequestStatus.REJECTED.value,
)


def initial_status(event: Event) -> RequestStatus:
    """CONFIRMED straight away when nobody has to moderate, PENDING otherwise."""
    if not event.request_moderation or event.participant_limit == 0:
        return RequestStatus.CONFIRMED
    return RequestStatus.PENDING


async def _check_can_apply(db: AsyncSession, event: Event, user_id: int) -> int:
    if event.initiator_id == user_id:
        raise ConflictError("The initiator cannot apply to their own event")
    if event.state != EventState.PUBLISHED.value:
        raise ConflictError(f"Event id={event.id} is not published")

    existing = await db.execute(
        select(ParticipationRequest.id).where(
            ParticipationRequest.event_id == event.id,
            ParticipationRequest.requester_id == user_id,
            ParticipationRequest.status.in_(ACTIVE_STATUSES),
        )
    )
    if existing.first() is not None:
        raise ConflictError(f"User id={user_id} already applied to event id={event.id}")

    count = await confirmed_count(db, event.id)
    if event.has_capacity_limit and count >= event.participant_limit:
        raise ConflictError("The participant limit has been reached")
    return count


async def create_request(db: AsyncSession, user_id: int, event_id: int) -> ParticipationRequest:
    """
    Apply to take part in an event.

    Raises NotFoundError for an unknown user or event and ConflictError when
    the requester is the initiator, the event is not published, the requester
    already holds a non-canceled request, or the limit is reached.
    """
    await ensure_user_exists(db, user_id)
    with event_log_context(event_id, requester_id=user_id):
        return await _create_guarded(db, user_id, event_id)


async def _create_guarded(db: AsyncSession, user_id: int, event_id: int) -> ParticipationRequest:
    async with get_event_guard().hold(capacity_key(event_id)):
        for attempt in range(1, settings.MAX_ADMISSION_RETRIES + 1):
            try:
                event = await get_event(db, event_id, for_update=True)
                count = await _check_can_apply(db, event, user_id)

                status = initial_status(event)
                request = ParticipationRequest(
                    event_id=event_id,
                    requester_id=user_id,
                    status=status.value,
                    created=utcnow(),
                )
                db.add(request)
                await db.flush()

                if status == RequestStatus.CONFIRMED:
                    await commit_confirmed(db, event, count + 1)

                await db.commit()
            except OptimisticLockError:
                await db.rollback()
                db_retries.inc()
                logger.info("request_retry", event_id=event_id, attempt=attempt, reason="version_conflict")
                if attempt == settings.MAX_ADMISSION_RETRIES:
                    record_request_creation("conflict")
                    raise ConflictError("Request failed due to high demand. Please try again.")
                continue
            except ConflictError:
                await db.rollback()
                record_request_creation("conflict")
                raise
            except Exception:
                await db.rollback()
                raise

            record_request_creation(status.value.lower())
            logger.info(
                "request_created",
                request_id=request.id,
                event_id=event_id,
                requester_id=user_id,
                status=status.value,
                attempt=attempt,
            )
            return request

    # Unreachable: the loop either returns or raises
    raise ConflictError("Request failed unexpectedly")


async def get_request(db: AsyncSession, request_id: int) -> ParticipationRequest:
    result = await db.execute(
        select(ParticipationRequest)
        .where(ParticipationRequest.id == request_id)
        .execution_options(populate_existing=True)
    )
    request = result.scalar_one_or_none()
    if not request:
        raise NotFoundError(f"Request with id={request_id} was not found")
    return request


async def cancel_request(db: AsyncSession, user_id: int, request_id: int) -> ParticipationRequest:
    """
    Withdraw a request. Any status becomes CANCELED.

    Canceling a CONFIRMED request lowers the event's confirmed aggregate;
    no PENDING request is promoted in its place.
    """
    await ensure_user_exists(db, user_id)
    request = await get_request(db, request_id)
    if request.requester_id != user_id:
        raise AccessError(f"Request id={request_id} does not belong to user id={user_id}")

    with event_log_context(request.event_id, requester_id=user_id):
        return await _cancel_guarded(db, user_id, request_id, request.event_id)


async def _cancel_guarded(
    db: AsyncSession, user_id: int, request_id: int, event_id: int
) -> ParticipationRequest:
    async with get_event_guard().hold(capacity_key(event_id)):
        for attempt in range(1, settings.MAX_ADMISSION_RETRIES + 1):
            try:
                request = await get_request(db, request_id)
                was_confirmed = request.status == RequestStatus.CONFIRMED.value
                request.status = RequestStatus.CANCELED.value
                await db.flush()

                if was_confirmed:
                    event = await get_event(db, event_id, for_update=True)
                    await commit_confirmed(db, event, await confirmed_count(db, event_id))

                await db.commit()
            except OptimisticLockError:
                await db.rollback()
                db_retries.inc()
                if attempt == settings.MAX_ADMISSION_RETRIES:
                    raise ConflictError("Cancellation failed due to high demand. Please try again.")
                continue
            except Exception:
                await db.rollback()
                raise

            logger.info(
                "request_canceled",
                request_id=request_id,
                event_id=event_id,
                requester_id=user_id,
                freed_place=was_confirmed,
            )
            return request

    raise ConflictError("Cancellation failed unexpectedly")


async def list_user_requests(db: AsyncSession, user_id: int) -> list[ParticipationRequest]:
    """All requests made by a user, in creation order."""
    await ensure_user_exists(db, user_id)
    result = await db.execute(
        select(ParticipationRequest)
        .where(ParticipationRequest.requester_id == user_id)
        .order_by(ParticipationRequest.id)
    )
    return list(result.scalars().all())


async def list_event_requests(db: AsyncSession, event_id: int) -> list[ParticipationRequest]:
    result = await db.execute(
        select(ParticipationRequest)
        .where(ParticipationRequest.event_id == event_id)
        .order_by(ParticipationRequest.id)
    )
    return list(result.scalars().all())


async def list_event_requests_for_owner(
    db: AsyncSession, user_id: int, event_id: int
) -> list[ParticipationRequest]:
    """Requests of an event, visible to its initiator only."""
    await ensure_user_exists(db, user_id)
    event = await get_event(db, event_id)
    if event.initiator_id != user_id:
        raise AccessError(f"User id={user_id} is not the initiator of event id={event_id}")
    return await list_event_requests(db, event_id)
