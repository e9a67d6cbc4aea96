from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_user_context
from db.database import get_async_session
from schemas.access import UserContext
from schemas.inventory import (
    InventoryItemCreate,
    InventoryItemFilters,
    InventoryItemList,
    InventoryItemRead,
    InventoryItemUpdate,
    ItemDeleteResult,
    ItemLedgerCheck,
    MovementType,
    StockMovementCreate,
    StockMovementFilters,
    StockMovementList,
    StockMovementRecorded,
    StockStatus,
)
from services import items as items_service
from services import ledger

router = APIRouter()


@router.get("/items", response_model=InventoryItemList)
async def list_items(
    category_id: Optional[UUID] = Query(None),
    status_filter: StockStatus = Query("all", alias="status"),
    search: Optional[str] = Query(None),
    archived: bool = Query(False),
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_async_session),
    user: Optional[UserContext] = Depends(current_user_context),
):
    filters = InventoryItemFilters(
        category_id=category_id,
        status=status_filter,
        search=search,
        archived=archived,
        limit=limit,
    )
    return await items_service.list_items(db, user, filters)


@router.post("/items", response_model=InventoryItemRead, status_code=status.HTTP_201_CREATED)
async def create_item(
    payload: InventoryItemCreate,
    db: AsyncSession = Depends(get_async_session),
    user: Optional[UserContext] = Depends(current_user_context),
):
    return await items_service.create_item(db, user, payload)


@router.get("/items/{item_id}", response_model=InventoryItemRead)
async def get_item(
    item_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: Optional[UserContext] = Depends(current_user_context),
):
    return await items_service.get_item(db, user, item_id)


@router.patch("/items/{item_id}", response_model=InventoryItemRead)
async def update_item(
    item_id: UUID,
    payload: InventoryItemUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: Optional[UserContext] = Depends(current_user_context),
):
    return await items_service.update_item(db, user, item_id, payload)


@router.post("/items/{item_id}/archive", response_model=InventoryItemRead)
async def archive_item(
    item_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: Optional[UserContext] = Depends(current_user_context),
):
    return await items_service.archive_item(db, user, item_id)


@router.delete("/items/{item_id}", response_model=ItemDeleteResult)
async def delete_item(
    item_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: Optional[UserContext] = Depends(current_user_context),
):
    return await items_service.delete_item(db, user, item_id)


@router.get("/items/{item_id}/ledger", response_model=ItemLedgerCheck)
async def check_item_ledger(
    item_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: Optional[UserContext] = Depends(current_user_context),
):
    return await ledger.check_item_ledger(db, user, item_id)


@router.get("/movements", response_model=StockMovementList)
async def list_movements(
    item_id: Optional[UUID] = Query(None),
    movement_type: Optional[MovementType] = Query(None, alias="type"),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_async_session),
    user: Optional[UserContext] = Depends(current_user_context),
):
    filters = StockMovementFilters(item_id=item_id, type=movement_type, limit=limit)
    return await ledger.list_movements(db, user, filters)


@router.post("/movements", response_model=StockMovementRecorded, status_code=status.HTTP_201_CREATED)
async def record_movement(
    payload: StockMovementCreate,
    db: AsyncSession = Depends(get_async_session),
    user: Optional[UserContext] = Depends(current_user_context),
):
    return await ledger.record_movement(db, user, payload)
