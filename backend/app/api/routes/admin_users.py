"""
User directory endpoints for administrators.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.user import UserCreate, UserResponse
from app.services.user_service import create_user, delete_user, list_users

router = APIRouter(prefix="/admin/users", tags=["Admin: Users"])


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user_endpoint(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db),
):
    """Register a user. Returns 409 if the email is taken."""
    return await create_user(db, user_data)


@router.get("", response_model=list[UserResponse])
async def list_users_endpoint(
    ids: Optional[list[int]] = Query(None),
    offset: int = Query(0, ge=0, alias="from"),
    size: int = Query(10, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
):
    return await list_users(db, ids, offset, size)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user_endpoint(
    user_id: int,
    db: AsyncSession = Depends(get_db),
):
    await delete_user(db, user_id)
