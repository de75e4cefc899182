"""
Compilation store: administrator-curated lists of events shown on the
public side, optionally pinned to the front page.
"""

from typing import Optional

from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.clients.likes import LikesClient
from app.clients.stats import StatsClient
from app.models.compilation import Compilation, compilation_events
from app.models.event import Event
from app.schemas.compilation import CompilationCreate, CompilationResponse, CompilationUpdate
from app.services.event_service import build_short_responses
from app.core.exceptions import NotFoundError
from app.core.logging import get_logger

logger = get_logger(__name__)


async def _existing_event_ids(db: AsyncSession, event_ids: list[int]) -> list[int]:
    # dict.fromkeys drops duplicates and keeps the caller's order
    wanted = list(dict.fromkeys(event_ids))
    if not wanted:
        return []
    result = await db.execute(select(Event.id).where(Event.id.in_(wanted)))
    found = set(result.scalars().all())
    missing = [event_id for event_id in wanted if event_id not in found]
    if missing:
        raise NotFoundError(f"Events with ids={missing} were not found")
    return wanted


async def _replace_events(db: AsyncSession, compilation_id: int, event_ids: list[int]) -> None:
    await db.execute(
        delete(compilation_events).where(compilation_events.c.compilation_id == compilation_id)
    )
    if event_ids:
        await db.execute(
            insert(compilation_events),
            [{"compilation_id": compilation_id, "event_id": event_id} for event_id in event_ids],
        )


async def create_compilation(db: AsyncSession, data: CompilationCreate) -> Compilation:
    event_ids = await _existing_event_ids(db, data.events)

    compilation = Compilation(title=data.title, pinned=data.pinned)
    db.add(compilation)
    await db.flush()
    await _replace_events(db, compilation.id, event_ids)

    logger.info("compilation_created", compilation_id=compilation.id, events=len(event_ids))
    return compilation


async def get_compilation(db: AsyncSession, compilation_id: int) -> Compilation:
    compilation = await db.get(Compilation, compilation_id)
    if compilation is None:
        raise NotFoundError(f"Compilation with id={compilation_id} was not found")
    return compilation


async def update_compilation(
    db: AsyncSession, compilation_id: int, data: CompilationUpdate
) -> Compilation:
    compilation = await get_compilation(db, compilation_id)
    if data.title is not None:
        compilation.title = data.title
    if data.pinned is not None:
        compilation.pinned = data.pinned
    if data.events is not None:
        await _replace_events(db, compilation_id, await _existing_event_ids(db, data.events))
    await db.flush()

    logger.info("compilation_updated", compilation_id=compilation_id)
    return compilation


async def delete_compilation(db: AsyncSession, compilation_id: int) -> None:
    compilation = await get_compilation(db, compilation_id)
    await _replace_events(db, compilation_id, [])
    await db.delete(compilation)
    await db.flush()
    logger.info("compilation_deleted", compilation_id=compilation_id)


async def list_compilations(
    db: AsyncSession, pinned: Optional[bool] = None, offset: int = 0, limit: int = 10
) -> list[Compilation]:
    query = select(Compilation)
    if pinned is not None:
        query = query.where(Compilation.pinned == pinned)
    result = await db.execute(query.order_by(Compilation.id).offset(offset).limit(limit))
    return list(result.scalars().all())


async def build_compilation_responses(
    db: AsyncSession,
    compilations: list[Compilation],
    stats: Optional[StatsClient] = None,
    likes: Optional[LikesClient] = None,
) -> list[CompilationResponse]:
    """Compilation DTOs with their events, loaded and enriched in one pass."""
    if not compilations:
        return []
    result = await db.execute(
        select(compilation_events.c.compilation_id, compilation_events.c.event_id)
        .where(compilation_events.c.compilation_id.in_([c.id for c in compilations]))
        .order_by(compilation_events.c.event_id)
    )
    members: dict[int, list[int]] = {c.id: [] for c in compilations}
    for compilation_id, event_id in result.all():
        members[compilation_id].append(event_id)

    all_ids = {event_id for ids in members.values() for event_id in ids}
    events = []
    if all_ids:
        events = list((await db.execute(select(Event).where(Event.id.in_(all_ids)))).scalars().all())
    short = {r.id: r for r in await build_short_responses(db, events, stats, likes)}

    return [
        CompilationResponse(
            id=c.id,
            title=c.title,
            pinned=c.pinned,
            events=[short[event_id] for event_id in members[c.id]],
        )
        for c in compilations
    ]


async def build_compilation_response(
    db: AsyncSession,
    compilation: Compilation,
    stats: Optional[StatsClient] = None,
    likes: Optional[LikesClient] = None,
) -> CompilationResponse:
    return (await build_compilation_responses(db, [compilation], stats, likes))[0]
