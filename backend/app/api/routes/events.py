"""
Public event endpoints with Redis caching on list operations.
"""

from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.clients.likes import LikesClient, get_likes_client
from app.clients.stats import StatsClient, get_stats_client
from app.db.session import get_db
from app.schemas.event import EventFullResponse, EventShortResponse
from app.services.cache_service import get_cached_events, set_cached_events
from app.services.event_service import (
    PublicSearch, build_full_response, build_short_responses, get_published_event,
    list_published_events, list_top_liked_events, list_top_viewed_events,
)
from app.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@router.get("", response_model=list[EventShortResponse])
async def list_events_endpoint(
    request: Request,
    text: Optional[str] = Query(None),
    categories: Optional[list[int]] = Query(None),
    paid: Optional[bool] = Query(None),
    range_start: Optional[datetime] = Query(None, alias="rangeStart"),
    range_end: Optional[datetime] = Query(None, alias="rangeEnd"),
    only_available: bool = Query(False, alias="onlyAvailable"),
    sort: Optional[Literal["EVENT_DATE", "VIEWS"]] = Query(None),
    offset: int = Query(0, ge=0, alias="from"),
    size: int = Query(10, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
    stats: StatsClient = Depends(get_stats_client),
    likes: LikesClient = Depends(get_likes_client),
):
    """
    Search published events.
    Without rangeStart/rangeEnd only upcoming events are listed.
    Results are cached in Redis; the cache is dropped on any event or
    request change.
    """
    await stats.record_hit(request.url.path, _client_ip(request))

    search = PublicSearch(
        text=text,
        categories=categories or [],
        paid=paid,
        range_start=range_start,
        range_end=range_end,
        only_available=only_available,
        sort=sort,
        offset=offset,
        limit=size,
    )
    key = search.cache_key()

    cached = await get_cached_events(key)
    if cached is not None:
        logger.info("events_list_cache_hit", key=key)
        return cached

    events = await list_published_events(db, search)
    responses = await build_short_responses(db, events, stats, likes, sort=sort)
    await set_cached_events(key, [r.model_dump(by_alias=True, mode="json") for r in responses])
    return responses


@router.get("/top", response_model=list[EventShortResponse])
async def top_liked_events_endpoint(
    request: Request,
    count: int = Query(10, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
    stats: StatsClient = Depends(get_stats_client),
    likes: LikesClient = Depends(get_likes_client),
):
    """Most liked published events, most liked first."""
    await stats.record_hit(request.url.path, _client_ip(request))
    events = await list_top_liked_events(db, likes, count)
    return await build_short_responses(db, events, stats, likes)


@router.get("/top-view", response_model=list[EventShortResponse])
async def top_viewed_events_endpoint(
    request: Request,
    count: int = Query(10, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
    stats: StatsClient = Depends(get_stats_client),
    likes: LikesClient = Depends(get_likes_client),
):
    """Most viewed published events, most viewed first."""
    await stats.record_hit(request.url.path, _client_ip(request))
    events = await list_top_viewed_events(db, stats, count)
    return await build_short_responses(db, events, stats, likes)


@router.get("/{event_id}", response_model=EventFullResponse)
async def get_event_endpoint(
    event_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    stats: StatsClient = Depends(get_stats_client),
    likes: LikesClient = Depends(get_likes_client),
):
    """Read a published event. Not cached: every read counts as a view."""
    event = await get_published_event(db, event_id)
    await stats.record_hit(request.url.path, _client_ip(request))
    return await build_full_response(db, event, stats, likes)
