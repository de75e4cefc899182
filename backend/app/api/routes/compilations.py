"""
Compilation endpoints: administrator curation and public reads.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.clients.likes import LikesClient, get_likes_client
from app.clients.stats import StatsClient, get_stats_client
from app.db.session import get_db
from app.schemas.compilation import CompilationCreate, CompilationResponse, CompilationUpdate
from app.services.compilation_service import (
    build_compilation_response, build_compilation_responses, create_compilation,
    delete_compilation, get_compilation, list_compilations, update_compilation,
)

router = APIRouter(prefix="/compilations", tags=["Compilations"])
admin_router = APIRouter(prefix="/admin/compilations", tags=["Admin: Compilations"])


@admin_router.post("", response_model=CompilationResponse, status_code=status.HTTP_201_CREATED)
async def create_compilation_endpoint(
    data: CompilationCreate,
    db: AsyncSession = Depends(get_db),
    stats: StatsClient = Depends(get_stats_client),
    likes: LikesClient = Depends(get_likes_client),
):
    """Returns 404 if any listed event does not exist."""
    compilation = await create_compilation(db, data)
    return await build_compilation_response(db, compilation, stats, likes)


@admin_router.patch("/{compilation_id}", response_model=CompilationResponse)
async def update_compilation_endpoint(
    compilation_id: int,
    data: CompilationUpdate,
    db: AsyncSession = Depends(get_db),
    stats: StatsClient = Depends(get_stats_client),
    likes: LikesClient = Depends(get_likes_client),
):
    compilation = await update_compilation(db, compilation_id, data)
    return await build_compilation_response(db, compilation, stats, likes)


@admin_router.delete("/{compilation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_compilation_endpoint(
    compilation_id: int,
    db: AsyncSession = Depends(get_db),
):
    await delete_compilation(db, compilation_id)


@router.get("", response_model=list[CompilationResponse])
async def list_compilations_endpoint(
    pinned: Optional[bool] = Query(None),
    offset: int = Query(0, ge=0, alias="from"),
    size: int = Query(10, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
    stats: StatsClient = Depends(get_stats_client),
    likes: LikesClient = Depends(get_likes_client),
):
    compilations = await list_compilations(db, pinned, offset, size)
    return await build_compilation_responses(db, compilations, stats, likes)


@router.get("/{compilation_id}", response_model=CompilationResponse)
async def get_compilation_endpoint(
    compilation_id: int,
    db: AsyncSession = Depends(get_db),
    stats: StatsClient = Depends(get_stats_client),
    likes: LikesClient = Depends(get_likes_client),
):
    compilation = await get_compilation(db, compilation_id)
    return await build_compilation_response(db, compilation, stats, likes)
