from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_user_context
from db.database import get_async_session
from schemas.access import UserContext
from schemas.lookups import UnitCreate, UnitRead, UnitUpdate
from services.lookups import units

router = APIRouter()


@router.get("/", response_model=List[UnitRead])
async def list_units(
    db: AsyncSession = Depends(get_async_session),
    user: Optional[UserContext] = Depends(current_user_context),
):
    return await units.list(db, user)


@router.post("/", response_model=UnitRead, status_code=status.HTTP_201_CREATED)
async def create_unit(
    payload: UnitCreate,
    db: AsyncSession = Depends(get_async_session),
    user: Optional[UserContext] = Depends(current_user_context),
):
    return await units.create(db, user, payload)


@router.patch("/{unit_id}", response_model=UnitRead)
async def update_unit(
    unit_id: UUID,
    payload: UnitUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: Optional[UserContext] = Depends(current_user_context),
):
    return await units.update(db, user, unit_id, payload)


@router.post("/{unit_id}/archive", response_model=UnitRead)
async def archive_unit(
    unit_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: Optional[UserContext] = Depends(current_user_context),
):
    return await units.archive(db, user, unit_id)


@router.delete("/{unit_id}")
async def delete_unit(
    unit_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: Optional[UserContext] = Depends(current_user_context),
):
    return await units.delete(db, user, unit_id)
