"""
Admission controller: the initiator confirms or rejects pending requests.

Rules, applied inside the event's capacity guard:

  - only the initiator may moderate requests of their event (AccessError)
  - every named request must still be PENDING, otherwise nothing changes
    and the call fails with ConflictError
  - REJECTED: all named requests become REJECTED
  - CONFIRMED: requests are confirmed one by one in the order given. When a
    confirmation fills the event exactly, every request of the event that is
    still PENDING becomes CANCELED. A request that finds the event already
    full ends the loop; confirmations made so far are kept and the call
    fails with ConflictError
  - ids that do not belong to the event are ignored

Partial progress on overflow is committed before the error is raised, so a
caller that gets a conflict back must re-read the event's requests to see
which of them were confirmed.
"""

import time
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.event import Event
from app.models.request import ParticipationRequest, RequestStatus
from app.services.capacity_service import (
    cancel_all_pending_for_event, commit_confirmed, confirmed_count,
)
from app.services.event_service import get_event
from app.services.interfaces.guard import capacity_key
from app.services.strategy_factory import get_event_guard
from app.services.user_service import ensure_user_exists
from app.core.config import get_settings
from app.core.exceptions import AccessError, ConflictError, OptimisticLockError, ValidationError
from app.core.logging import event_log_context, get_logger
from app.core.metrics import (
    admission_latency, db_retries, record_admission, record_admission_conflict,
)

logger = get_logger(__name__)
settings = get_settings()


@dataclass
class AdmissionResult:
    confirmed: list[ParticipationRequest] = field(default_factory=list)
    rejected: list[ParticipationRequest] = field(default_factory=list)


async def _load_named_requests(
    db: AsyncSession, event_id: int, request_ids: list[int]
) -> list[ParticipationRequest]:
    """Named requests of the event, in the caller's order, duplicates dropped."""
    ordered_ids = list(dict.fromkeys(request_ids))
    result = await db.execute(
        select(ParticipationRequest)
        .where(
            ParticipationRequest.id.in_(ordered_ids),
            ParticipationRequest.event_id == event_id,
        )
        .execution_options(populate_existing=True)
    )
    by_id = {r.id: r for r in result.scalars().all()}
    return [by_id[i] for i in ordered_ids if i in by_id]


async def _confirm_in_order(
    db: AsyncSession, event: Event, requests: list[ParticipationRequest]
) -> Optional[ConflictError]:
    """Confirm requests until the limit; returns the overflow error, if any."""
    count = await confirmed_count(db, event.id)
    limit = event.participant_limit
    start_count = count
    overflow = None

    for request in requests:
        if limit and count >= limit:
            logger.warning(
                "admission_limit_exceeded",
                event_id=event.id,
                request_id=request.id,
                limit=limit,
            )
            record_admission_conflict("limit_exceeded")
            overflow = ConflictError("The participant limit has been reached")
            break

        request.status = RequestStatus.CONFIRMED.value
        count += 1
        if limit and count == limit:
            canceled = await cancel_all_pending_for_event(db, event.id)
            record_admission(RequestStatus.CANCELED.value, canceled)

    if count != start_count:
        await commit_confirmed(db, event, count)
        record_admission(RequestStatus.CONFIRMED.value, count - start_count)
    return overflow


async def _admit_once(
    db: AsyncSession,
    owner_id: int,
    event_id: int,
    request_ids: list[int],
    target_status: RequestStatus,
) -> Optional[ConflictError]:
    event = await get_event(db, event_id, for_update=True)
    if event.initiator_id != owner_id:
        raise AccessError(f"User id={owner_id} is not the initiator of event id={event_id}")

    requests = await _load_named_requests(db, event_id, request_ids)
    not_pending = [r.id for r in requests if r.status != RequestStatus.PENDING.value]
    if not_pending:
        record_admission_conflict("not_pending")
        raise ConflictError(f"Requests {not_pending} are not pending")

    if target_status == RequestStatus.REJECTED:
        for request in requests:
            request.status = RequestStatus.REJECTED.value
        record_admission(RequestStatus.REJECTED.value, len(requests))
        return None

    return await _confirm_in_order(db, event, requests)


async def update_request_statuses(
    db: AsyncSession,
    owner_id: int,
    event_id: int,
    request_ids: list[int],
    target_status: RequestStatus,
) -> AdmissionResult:
    """
    Confirm or reject pending requests of an event.

    Returns every CONFIRMED and REJECTED request of the event after the call.

    Raises:
        NotFoundError: unknown user or event
        AccessError: caller is not the initiator
        ValidationError: target status is neither CONFIRMED nor REJECTED
        ConflictError: a named request is not PENDING (no effect), or the
            limit was exceeded part way (earlier confirmations are kept)
    """
    if target_status not in (RequestStatus.CONFIRMED, RequestStatus.REJECTED):
        raise ValidationError(f"Cannot set request status to {target_status.value}")

    await ensure_user_exists(db, owner_id)
    with event_log_context(event_id, owner_id=owner_id):
        return await _update_guarded(db, owner_id, event_id, request_ids, target_status)


async def _update_guarded(
    db: AsyncSession,
    owner_id: int,
    event_id: int,
    request_ids: list[int],
    target_status: RequestStatus,
) -> AdmissionResult:
    async with get_event_guard().hold(capacity_key(event_id)):
        started = time.perf_counter()
        for attempt in range(1, settings.MAX_ADMISSION_RETRIES + 1):
            try:
                overflow = await _admit_once(db, owner_id, event_id, request_ids, target_status)
                await db.commit()
                break
            except OptimisticLockError:
                await db.rollback()
                db_retries.inc()
                logger.info("admission_retry", event_id=event_id, attempt=attempt)
                if attempt == settings.MAX_ADMISSION_RETRIES:
                    record_admission_conflict("contention")
                    raise ConflictError("Admission failed due to high demand. Please try again.")
            except Exception:
                await db.rollback()
                raise
        admission_latency.observe(time.perf_counter() - started)

    logger.info(
        "admission_applied",
        event_id=event_id,
        target=target_status.value,
        requested=len(request_ids),
        overflow=overflow is not None,
    )
    if overflow is not None:
        raise overflow
    return await list_decided_requests(db, event_id)


async def list_decided_requests(db: AsyncSession, event_id: int) -> AdmissionResult:
    """CONFIRMED and REJECTED requests of an event, in id order."""
    result = await db.execute(
        select(ParticipationRequest)
        .where(
            ParticipationRequest.event_id == event_id,
            ParticipationRequest.status.in_(
                (RequestStatus.CONFIRMED.value, RequestStatus.REJECTED.value)
            ),
        )
        .order_by(ParticipationRequest.id)
    )
    decided = AdmissionResult()
    for request in result.scalars().all():
        if request.status == RequestStatus.CONFIRMED.value:
            decided.confirmed.append(request)
        else:
            decided.rejected.append(request)
    return decided
