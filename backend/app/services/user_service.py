"""
User directory: registration by administrators and existence checks used by
the event and request services.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.event import Event
from app.models.request import ParticipationRequest
from app.models.user import User
from app.schemas.user import UserCreate
from app.core.exceptions import ConflictError, NotFoundError
from app.core.logging import get_logger

logger = get_logger(__name__)


async def create_user(db: AsyncSession, user_data: UserCreate) -> User:
    """
    Register a new user.
    Raises ConflictError if the email already exists.
    """
    result = await db.execute(select(User).where(User.email == user_data.email))
    if result.scalar_one_or_none():
        logger.warning("user_create_failed", reason="email_exists", email=user_data.email)
        raise ConflictError(f"Email {user_data.email} is already registered")

    user = User(name=user_data.name, email=user_data.email)
    db.add(user)
    await db.flush()

    logger.info("user_created", user_id=user.id, email=user.email)
    return user


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User with id={user_id} was not found")
    return user


async def user_exists(db: AsyncSession, user_id: int) -> bool:
    result = await db.execute(select(User.id).where(User.id == user_id))
    return result.scalar_one_or_none() is not None


async def ensure_user_exists(db: AsyncSession, user_id: int) -> None:
    if not await user_exists(db, user_id):
        raise NotFoundError(f"User with id={user_id} was not found")


async def get_users_by_ids(db: AsyncSession, user_ids: list[int]) -> dict[int, User]:
    if not user_ids:
        return {}
    result = await db.execute(select(User).where(User.id.in_(set(user_ids))))
    return {user.id: user for user in result.scalars().all()}


async def list_users(
    db: AsyncSession,
    ids: Optional[list[int]] = None,
    offset: int = 0,
    limit: int = 10,
) -> list[User]:
    query = select(User)
    if ids:
        query = query.where(User.id.in_(ids))
    result = await db.execute(query.order_by(User.id).offset(offset).limit(limit))
    return list(result.scalars().all())


async def delete_user(db: AsyncSession, user_id: int) -> None:
    """
    Remove a user that never took part in anything.
    Raises ConflictError while the user still initiates events or holds
    requests; those rows are never removed.
    """
    user = await get_user(db, user_id)
    events = await db.execute(select(Event.id).where(Event.initiator_id == user_id).limit(1))
    requests = await db.execute(
        select(ParticipationRequest.id).where(ParticipationRequest.requester_id == user_id).limit(1)
    )
    if events.first() is not None or requests.first() is not None:
        logger.warning("user_delete_rejected", user_id=user_id, reason="has_history")
        raise ConflictError(f"User with id={user_id} has events or participation requests")

    await db.delete(user)
    await db.flush()
    logger.info("user_deleted", user_id=user_id)
