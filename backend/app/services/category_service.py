"""
Category store. Events reference categories as foreign keys.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.category import Category
from app.models.event import Event
from app.schemas.category import CategoryCreate
from app.core.exceptions import ConflictError, NotFoundError
from app.core.logging import get_logger

logger = get_logger(__name__)


async def create_category(db: AsyncSession, data: CategoryCreate) -> Category:
    result = await db.execute(select(Category).where(Category.name == data.name))
    if result.scalar_one_or_none():
        raise ConflictError(f"Category {data.name!r} already exists")

    category = Category(name=data.name)
    db.add(category)
    await db.flush()

    logger.info("category_created", category_id=category.id, name=category.name)
    return category


async def get_category(db: AsyncSession, category_id: int) -> Category:
    category = await db.get(Category, category_id)
    if category is None:
        raise NotFoundError(f"Category with id={category_id} was not found")
    return category


async def get_categories_by_ids(db: AsyncSession, category_ids: list[int]) -> dict[int, Category]:
    if not category_ids:
        return {}
    result = await db.execute(select(Category).where(Category.id.in_(set(category_ids))))
    return {category.id: category for category in result.scalars().all()}


async def list_categories(db: AsyncSession, offset: int = 0, limit: int = 10) -> list[Category]:
    result = await db.execute(select(Category).order_by(Category.id).offset(offset).limit(limit))
    return list(result.scalars().all())


async def update_category(db: AsyncSession, category_id: int, data: CategoryCreate) -> Category:
    """Rename a category. Names stay unique."""
    category = await get_category(db, category_id)
    if category.name == data.name:
        return category

    result = await db.execute(
        select(Category.id).where(Category.name == data.name, Category.id != category_id)
    )
    if result.scalar_one_or_none() is not None:
        raise ConflictError(f"Category {data.name!r} already exists")

    category.name = data.name
    await db.flush()
    logger.info("category_renamed", category_id=category_id, name=data.name)
    return category


async def delete_category(db: AsyncSession, category_id: int) -> None:
    """Delete a category no event refers to."""
    category = await get_category(db, category_id)
    in_use = await db.execute(select(Event.id).where(Event.category_id == category_id).limit(1))
    if in_use.scalar_one_or_none() is not None:
        logger.warning("category_delete_rejected", category_id=category_id)
        raise ConflictError(f"Category with id={category_id} is used by events")

    await db.delete(category)
    await db.flush()
    logger.info("category_deleted", category_id=category_id)
