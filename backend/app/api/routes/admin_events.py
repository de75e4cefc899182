"""
Administrator endpoints: event search and moderation.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.clients.likes import LikesClient, get_likes_client
from app.clients.stats import StatsClient, get_stats_client
from app.db.session import get_db
from app.models.event import EventState
from app.schemas.event import EventFullResponse, UpdateEventAdminRequest
from app.services.cache_service import invalidate_event_cache
from app.services.event_service import AdminSearch, build_full_response, build_full_responses, list_admin_events
from app.services.lifecycle_service import update_event_by_admin

router = APIRouter(prefix="/admin/events", tags=["Admin: Events"])


@router.get("", response_model=list[EventFullResponse])
async def search_events_endpoint(
    users: Optional[list[int]] = Query(None),
    states: Optional[list[EventState]] = Query(None),
    categories: Optional[list[int]] = Query(None),
    range_start: Optional[datetime] = Query(None, alias="rangeStart"),
    range_end: Optional[datetime] = Query(None, alias="rangeEnd"),
    offset: int = Query(0, ge=0, alias="from"),
    size: int = Query(10, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
    stats: StatsClient = Depends(get_stats_client),
    likes: LikesClient = Depends(get_likes_client),
):
    """Search events in any state."""
    search = AdminSearch(
        users=users or [],
        states=[s.value for s in states or []],
        categories=categories or [],
        range_start=range_start,
        range_end=range_end,
        offset=offset,
        limit=size,
    )
    events = await list_admin_events(db, search)
    return await build_full_responses(db, events, stats, likes)


@router.patch("/{event_id}", response_model=EventFullResponse)
async def moderate_event_endpoint(
    event_id: int,
    update: UpdateEventAdminRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Edit a PENDING event and optionally publish (PUBLISH_EVENT) or reject
    (REJECT_EVENT) it. A published event can no longer change.
    """
    event = await update_event_by_admin(db, event_id, update)
    await invalidate_event_cache()
    return await build_full_response(db, event)
