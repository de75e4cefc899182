"""
Category endpoints: public reads and administrator management.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.category import CategoryCreate, CategoryResponse
from app.services.cache_service import invalidate_event_cache
from app.services.category_service import (
    create_category, delete_category, get_category, list_categories, update_category,
)

router = APIRouter(prefix="/categories", tags=["Categories"])
admin_router = APIRouter(prefix="/admin/categories", tags=["Admin: Categories"])


@admin_router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category_endpoint(
    data: CategoryCreate,
    db: AsyncSession = Depends(get_db),
):
    return await create_category(db, data)


@admin_router.patch("/{category_id}", response_model=CategoryResponse)
async def update_category_endpoint(
    category_id: int,
    data: CategoryCreate,
    db: AsyncSession = Depends(get_db),
):
    """Rename a category. Returns 409 if another category has the name."""
    category = await update_category(db, category_id, data)
    await db.commit()
    # cached listings embed the category name
    await invalidate_event_cache()
    return category


@admin_router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category_endpoint(
    category_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Returns 409 while any event is in the category."""
    await delete_category(db, category_id)


@router.get("", response_model=list[CategoryResponse])
async def list_categories_endpoint(
    offset: int = Query(0, ge=0, alias="from"),
    size: int = Query(10, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
):
    return await list_categories(db, offset, size)


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category_endpoint(
    category_id: int,
    db: AsyncSession = Depends(get_db),
):
    return await get_category(db, category_id)
