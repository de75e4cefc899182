"""
Participant endpoints: apply to events and withdraw requests.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.request import ParticipationRequestResponse
from app.services.cache_service import invalidate_event_cache
from app.services.request_service import cancel_request, create_request, list_user_requests

router = APIRouter(prefix="/users/{user_id}/requests", tags=["Participant: Requests"])


@router.post("", response_model=ParticipationRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_request_endpoint(
    user_id: int,
    event_id: int = Query(..., alias="eventId"),
    db: AsyncSession = Depends(get_db),
):
    """
    Apply to a published event.

    The request is CONFIRMED at once when the event has no moderation or no
    participant limit, PENDING otherwise. Returns 409 when the limit is
    reached or the user already applied.
    """
    request = await create_request(db, user_id, event_id)
    await invalidate_event_cache()
    return request


@router.get("", response_model=list[ParticipationRequestResponse])
async def list_requests_endpoint(
    user_id: int,
    db: AsyncSession = Depends(get_db),
):
    return await list_user_requests(db, user_id)


@router.patch("/{request_id}/cancel", response_model=ParticipationRequestResponse)
async def cancel_request_endpoint(
    user_id: int,
    request_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Withdraw a request. A freed place is not handed to a pending request."""
    request = await cancel_request(db, user_id, request_id)
    await invalidate_event_cache()
    return request
