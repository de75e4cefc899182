"""
Initiator endpoints: own events, their edits and request moderation.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.models.request import RequestStatus
from app.schemas.event import EventCreate, EventFullResponse, EventShortResponse, UpdateEventUserRequest
from app.schemas.request import (
    EventRequestStatusUpdateRequest, EventRequestStatusUpdateResult, ParticipationRequestResponse,
)
from app.services.admission_service import update_request_statuses
from app.services.cache_service import invalidate_event_cache
from app.services.event_service import (
    build_full_response, build_short_responses, create_event, get_initiator_event,
    list_initiator_events,
)
from app.services.lifecycle_service import update_event_by_owner
from app.services.request_service import list_event_requests_for_owner

router = APIRouter(prefix="/users/{user_id}/events", tags=["Initiator: Events"])


@router.post("", response_model=EventFullResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    user_id: int,
    event_data: EventCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create an event in PENDING. The date must be at least 2 hours ahead."""
    event = await create_event(db, user_id, event_data)
    return await build_full_response(db, event)


@router.get("", response_model=list[EventShortResponse])
async def list_events_endpoint(
    user_id: int,
    offset: int = Query(0, ge=0, alias="from"),
    size: int = Query(10, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
):
    events = await list_initiator_events(db, user_id, offset, size)
    return await build_short_responses(db, events)


@router.get("/{event_id}", response_model=EventFullResponse)
async def get_event_endpoint(
    user_id: int,
    event_id: int,
    db: AsyncSession = Depends(get_db),
):
    event = await get_initiator_event(db, user_id, event_id)
    return await build_full_response(db, event)


@router.patch("/{event_id}", response_model=EventFullResponse)
async def update_event_endpoint(
    user_id: int,
    event_id: int,
    update: UpdateEventUserRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Edit a PENDING or CANCELED event and optionally send it to review
    (SEND_TO_REVIEW) or withdraw it (CANCEL_REVIEW).
    """
    event = await update_event_by_owner(db, user_id, event_id, update)
    await invalidate_event_cache()
    return await build_full_response(db, event)


@router.get("/{event_id}/requests", response_model=list[ParticipationRequestResponse])
async def list_event_requests_endpoint(
    user_id: int,
    event_id: int,
    db: AsyncSession = Depends(get_db),
):
    return await list_event_requests_for_owner(db, user_id, event_id)


@router.patch("/{event_id}/requests", response_model=EventRequestStatusUpdateResult)
async def update_request_statuses_endpoint(
    user_id: int,
    event_id: int,
    body: EventRequestStatusUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Confirm or reject pending requests.

    On 409 because the limit was exceeded, confirmations made before the
    limit was hit are kept.
    """
    try:
        result = await update_request_statuses(
            db, user_id, event_id, body.request_ids, RequestStatus(body.status)
        )
    finally:
        # Partial confirmations are committed even when a conflict is raised
        await invalidate_event_cache()

    return EventRequestStatusUpdateResult(
        confirmed_requests=[ParticipationRequestResponse.model_validate(r) for r in result.confirmed],
        rejected_requests=[ParticipationRequestResponse.model_validate(r) for r in result.rejected],
    )
