from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_user_context
from db.database import get_async_session
from schemas.access import UserContext
from schemas.lookups import CategoryCreate, CategoryRead, CategoryUpdate
from services.lookups import categories

router = APIRouter()


@router.get("/", response_model=List[CategoryRead])
async def list_categories(
    db: AsyncSession = Depends(get_async_session),
    user: Optional[UserContext] = Depends(current_user_context),
):
    return await categories.list(db, user)


@router.post("/", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreate,
    db: AsyncSession = Depends(get_async_session),
    user: Optional[UserContext] = Depends(current_user_context),
):
    return await categories.create(db, user, payload)


@router.patch("/{category_id}", response_model=CategoryRead)
async def update_category(
    category_id: UUID,
    payload: CategoryUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: Optional[UserContext] = Depends(current_user_context),
):
    return await categories.update(db, user, category_id, payload)


@router.post("/{category_id}/archive", response_model=CategoryRead)
async def archive_category(
    category_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: Optional[UserContext] = Depends(current_user_context),
):
    return await categories.archive(db, user, category_id)


@router.delete("/{category_id}")
async def delete_category(
    category_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: Optional[UserContext] = Depends(current_user_context),
):
    return await categories.delete(db, user, category_id)
