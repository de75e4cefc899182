"""
Event service handling creation, reads and response assembly.

Lifecycle transitions and field edits live in lifecycle_service; this module
only creates events in PENDING and reads them back, enriched with data owned
by other stores (categories, locations, initiators) and by the external
statistics and likes collaborators.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.clients.likes import LikesClient
from app.clients.stats import StatsClient
from app.models.event import Event, EventState
from app.models.location import Location
from app.schemas.category import CategoryResponse
from app.schemas.event import EventCreate, EventFullResponse, EventShortResponse, LocationSchema
from app.schemas.user import UserShortResponse
from app.services.category_service import get_categories_by_ids, get_category
from app.services.user_service import ensure_user_exists, get_users_by_ids
from app.core.clock import as_utc, is_before_lead_time, utcnow
from app.core.config import get_settings
from app.core.exceptions import NotFoundError, ValidationError
from app.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


@dataclass
class PublicSearch:
    text: Optional[str] = None
    categories: list[int] = field(default_factory=list)
    paid: Optional[bool] = None
    range_start: Optional[datetime] = None
    range_end: Optional[datetime] = None
    only_available: bool = False
    sort: Optional[str] = None  # EVENT_DATE or VIEWS
    offset: int = 0
    limit: int = 10

    def cache_key(self) -> str:
        parts = [
            f"text={self.text or ''}",
            f"categories={','.join(str(c) for c in sorted(self.categories))}",
            f"paid={self.paid}",
            f"start={self.range_start.isoformat() if self.range_start else ''}",
            f"end={self.range_end.isoformat() if self.range_end else ''}",
            f"available={self.only_available}",
            f"sort={self.sort or ''}",
            f"from={self.offset}",
            f"size={self.limit}",
        ]
        return "&".join(parts)


@dataclass
class AdminSearch:
    users: list[int] = field(default_factory=list)
    states: list[str] = field(default_factory=list)
    categories: list[int] = field(default_factory=list)
    range_start: Optional[datetime] = None
    range_end: Optional[datetime] = None
    offset: int = 0
    limit: int = 10


async def create_location(db: AsyncSession, location: LocationSchema) -> Location:
    entity = Location(lat=location.lat, lon=location.lon)
    db.add(entity)
    await db.flush()
    return entity


async def create_event(db: AsyncSession, initiator_id: int, event_data: EventCreate) -> Event:
    """
    Create a new event in PENDING.

    The event date must leave the owner lead time (2 hours by default);
    initiator and category must exist.
    """
    await ensure_user_exists(db, initiator_id)
    await get_category(db, event_data.category)

    if is_before_lead_time(event_data.event_date, settings.OWNER_EVENT_LEAD_HOURS):
        logger.warning("event_create_rejected", reason="lead_time", initiator_id=initiator_id)
        raise ValidationError(
            f"Event date must be at least {settings.OWNER_EVENT_LEAD_HOURS} hours in the future"
        )

    location = await create_location(db, event_data.location)
    event = Event(
        title=event_data.title,
        annotation=event_data.annotation,
        description=event_data.description,
        event_date=as_utc(event_data.event_date),
        paid=event_data.paid,
        participant_limit=event_data.participant_limit,
        request_moderation=event_data.request_moderation,
        state=EventState.PENDING.value,
        created_on=utcnow(),
        published_on=None,
        initiator_id=initiator_id,
        category_id=event_data.category,
        location_id=location.id,
        confirmed_requests=0,
        version=1,
    )
    db.add(event)
    await db.flush()

    logger.info(
        "event_created",
        event_id=event.id,
        initiator_id=initiator_id,
        participant_limit=event.participant_limit,
        moderation=event.request_moderation,
    )
    return event


async def get_event(db: AsyncSession, event_id: int, for_update: bool = False) -> Event:
    """
    Get a single event by ID.

    for_update=True takes a row lock on databases that support it and always
    re-reads the row, bypassing whatever the session already holds.
    """
    query = select(Event).where(Event.id == event_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    event = result.scalar_one_or_none()

    if not event:
        raise NotFoundError(f"Event with id={event_id} was not found")
    return event


async def get_initiator_event(db: AsyncSession, user_id: int, event_id: int) -> Event:
    await ensure_user_exists(db, user_id)
    result = await db.execute(
        select(Event).where(Event.id == event_id, Event.initiator_id == user_id)
    )
    event = result.scalar_one_or_none()
    if not event:
        raise NotFoundError(f"Event with id={event_id} created by user id={user_id} was not found")
    return event


async def get_published_event(db: AsyncSession, event_id: int) -> Event:
    event = await get_event(db, event_id)
    if event.state != EventState.PUBLISHED.value:
        raise NotFoundError(f"Event with id={event_id} was not found")
    return event


async def list_initiator_events(
    db: AsyncSession, user_id: int, offset: int = 0, limit: int = 10
) -> list[Event]:
    await ensure_user_exists(db, user_id)
    result = await db.execute(
        select(Event)
        .where(Event.initiator_id == user_id)
        .order_by(Event.id)
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all())


async def list_admin_events(db: AsyncSession, search: AdminSearch) -> list[Event]:
    query = select(Event)
    if search.users:
        query = query.where(Event.initiator_id.in_(search.users))
    if search.states:
        query = query.where(Event.state.in_(search.states))
    if search.categories:
        query = query.where(Event.category_id.in_(search.categories))
    if search.range_start:
        query = query.where(Event.event_date >= as_utc(search.range_start))
    if search.range_end:
        query = query.where(Event.event_date <= as_utc(search.range_end))

    result = await db.execute(query.order_by(Event.id).offset(search.offset).limit(search.limit))
    return list(result.scalars().all())


async def list_published_events(db: AsyncSession, search: PublicSearch) -> list[Event]:
    """
    Public search over PUBLISHED events.
    Without a date range only upcoming events are returned.
    Uses the ix_events_state_date index for the state + date filter.
    """
    if search.range_start and search.range_end and as_utc(search.range_start) > as_utc(search.range_end):
        raise ValidationError("rangeStart must not be after rangeEnd")

    query = select(Event).where(Event.state == EventState.PUBLISHED.value)

    if search.text:
        pattern = f"%{search.text.lower()}%"
        query = query.where(
            or_(
                func.lower(Event.annotation).like(pattern),
                func.lower(Event.description).like(pattern),
            )
        )
    if search.categories:
        query = query.where(Event.category_id.in_(search.categories))
    if search.paid is not None:
        query = query.where(Event.paid == search.paid)

    if search.range_start or search.range_end:
        if search.range_start:
            query = query.where(Event.event_date >= as_utc(search.range_start))
        if search.range_end:
            query = query.where(Event.event_date <= as_utc(search.range_end))
    else:
        query = query.where(Event.event_date > utcnow())

    if search.only_available:
        query = query.where(
            or_(Event.participant_limit == 0, Event.confirmed_requests < Event.participant_limit)
        )

    result = await db.execute(
        query.order_by(Event.event_date.asc(), Event.id).offset(search.offset).limit(search.limit)
    )
    return list(result.scalars().all())


async def _collect_references(db: AsyncSession, events: list[Event]):
    categories = await get_categories_by_ids(db, [e.category_id for e in events])
    users = await get_users_by_ids(db, [e.initiator_id for e in events])
    result = await db.execute(
        select(Location).where(Location.id.in_({e.location_id for e in events}))
    )
    locations = {loc.id: loc for loc in result.scalars().all()}
    return categories, users, locations


def _short_fields(event: Event, categories, users, views: int, likes: int) -> dict:
    return {
        "id": event.id,
        "title": event.title,
        "annotation": event.annotation,
        "category": CategoryResponse.model_validate(categories[event.category_id]),
        "confirmed_requests": event.confirmed_requests,
        "event_date": event.event_date,
        "initiator": UserShortResponse.model_validate(users[event.initiator_id]),
        "paid": event.paid,
        "views": views,
        "likes_count": likes,
    }


async def build_full_responses(
    db: AsyncSession,
    events: list[Event],
    stats: Optional[StatsClient] = None,
    likes: Optional[LikesClient] = None,
) -> list[EventFullResponse]:
    """Assemble full event DTOs; collaborators are optional (owner/admin paths skip views)."""
    if not events:
        return []
    categories, users, locations = await _collect_references(db, events)
    ids = [e.id for e in events]
    views = await stats.view_counts(ids) if stats else {}
    like_counts = await likes.like_counts(ids) if likes else {}

    responses = []
    for event in events:
        location = locations[event.location_id]
        responses.append(
            EventFullResponse(
                **_short_fields(event, categories, users, views.get(event.id, 0), like_counts.get(event.id, 0)),
                description=event.description,
                location=LocationSchema(lat=location.lat, lon=location.lon),
                participant_limit=event.participant_limit,
                request_moderation=event.request_moderation,
                state=event.state,
                created_on=event.created_on,
                published_on=event.published_on,
            )
        )
    return responses


async def build_full_response(
    db: AsyncSession,
    event: Event,
    stats: Optional[StatsClient] = None,
    likes: Optional[LikesClient] = None,
) -> EventFullResponse:
    return (await build_full_responses(db, [event], stats, likes))[0]


async def build_short_responses(
    db: AsyncSession,
    events: list[Event],
    stats: Optional[StatsClient] = None,
    likes: Optional[LikesClient] = None,
    sort: Optional[str] = None,
) -> list[EventShortResponse]:
    if not events:
        return []
    categories, users, _ = await _collect_references(db, events)
    ids = [e.id for e in events]
    views = await stats.view_counts(ids) if stats else {}
    like_counts = await likes.like_counts(ids) if likes else {}

    responses = [
        EventShortResponse(
            **_short_fields(event, categories, users, views.get(event.id, 0), like_counts.get(event.id, 0))
        )
        for event in events
    ]
    if sort == "VIEWS":
        responses.sort(key=lambda r: r.views, reverse=True)
    return responses


async def _published_in_order(db: AsyncSession, ranked_ids: list[int], count: int) -> list[Event]:
    if not ranked_ids:
        return []
    result = await db.execute(
        select(Event).where(
            Event.id.in_(ranked_ids), Event.state == EventState.PUBLISHED.value
        )
    )
    by_id = {event.id: event for event in result.scalars().all()}
    return [by_id[event_id] for event_id in ranked_ids if event_id in by_id][:count]


async def list_top_liked_events(db: AsyncSession, likes: LikesClient, count: int) -> list[Event]:
    """Published events ranked by likes. Unpublished ids in the ranking are dropped."""
    ranking = await likes.top_liked_events(count)
    return await _published_in_order(db, list(ranking), count)


async def list_top_viewed_events(db: AsyncSession, stats: StatsClient, count: int) -> list[Event]:
    """Published events ranked by unique views of their public page."""
    ranking = await stats.view_ranking()
    return await _published_in_order(db, [event_id for event_id, _ in ranking], count)
