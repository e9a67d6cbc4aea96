import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import NotFoundError
from db.inventory.category import InventoryCategory
from db.inventory.item import InventoryItem
from db.inventory.movement import StockMovement
from db.inventory.unit import InventoryUnit
from schemas.access import UserContext
from schemas.inventory import (
    InventoryItemCreate,
    InventoryItemFilters,
    InventoryItemList,
    InventoryItemRead,
    InventoryItemUpdate,
    ItemDeleteResult,
)
from services.access import Permission, assert_access
from services.ledger import item_locks

logger = logging.getLogger(__name__)


def stock_status(item) -> str:
    """'outOfStock' | 'lowStock' | 'inStock' for list filtering (threshold defaults to 0)."""
    threshold = item.low_stock_threshold or 0
    if item.current_stock == 0:
        return "outOfStock"
    if item.current_stock <= threshold:
        return "lowStock"
    return "inStock"


async def get_team_item(db: AsyncSession, team_id: UUID, item_id: UUID) -> InventoryItem:
    res = await db.execute(
        select(InventoryItem)
        .where(InventoryItem.id == item_id)
        .execution_options(populate_existing=True)
    )
    item = res.scalar_one_or_none()
    if item is None or item.team_id != team_id:
        raise NotFoundError("Item", item_id)
    return item


async def _ensure_lookup(db: AsyncSession, model, entity: str, team_id: UUID, row_id: UUID) -> None:
    res = await db.execute(select(model.team_id).where(model.id == row_id))
    owner = res.scalar_one_or_none()
    if owner is None or owner != team_id:
        raise NotFoundError(entity, row_id)


async def list_items(
    db: AsyncSession,
    user: Optional[UserContext],
    filters: InventoryItemFilters,
) -> InventoryItemList:
    user = await assert_access(db, user, Permission.VIEW)

    stmt = select(InventoryItem).where(
        InventoryItem.team_id == user.team_id,
        InventoryItem.archived == filters.archived,
    )
    if filters.category_id:
        stmt = stmt.where(InventoryItem.category_id == filters.category_id)
    if filters.search:
        stmt = stmt.where(func.lower(InventoryItem.name).like(f"%{filters.search.lower()}%"))

    total = (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()
    res = await db.execute(stmt.order_by(InventoryItem.created_at.desc()).limit(filters.limit))
    items = res.scalars().all()

    # Status depends on each row's own threshold, so it is filtered in memory.
    if filters.status != "all":
        items = [it for it in items if stock_status(it) == filters.status]

    return InventoryItemList(items=[InventoryItemRead(**it.to_schema) for it in items], total=int(total))


async def get_item(db: AsyncSession, user: Optional[UserContext], item_id: UUID) -> InventoryItemRead:
    user = await assert_access(db, user, Permission.VIEW)
    item = await get_team_item(db, user.team_id, item_id)
    return InventoryItemRead(**item.to_schema)


async def create_item(
    db: AsyncSession,
    user: Optional[UserContext],
    payload: InventoryItemCreate,
) -> InventoryItemRead:
    user = await assert_access(db, user, Permission.CREATE)

    await _ensure_lookup(db, InventoryUnit, "Unit", user.team_id, payload.unit_id)
    if payload.category_id:
        await _ensure_lookup(db, InventoryCategory, "Category", user.team_id, payload.category_id)

    # Opening stock is written directly and kept as initial_stock, the replay base.
    item = InventoryItem(
        team_id=user.team_id,
        created_by=user.user_id,
        name=payload.name,
        sku=payload.sku,
        category_id=payload.category_id,
        description=payload.description,
        unit_id=payload.unit_id,
        current_stock=payload.current_stock,
        initial_stock=payload.current_stock,
        version=0,
        low_stock_threshold=payload.low_stock_threshold,
        cost_per_unit=payload.cost_per_unit,
        location=payload.location,
        notes=payload.notes,
        image_file_id=None,
        archived=False,
        archived_at=None,
    )
    db.add(item)
    await db.commit()
    await db.refresh(item)
    logger.info("Created item %s (%s) in team %s with stock %d", item.id, item.name, item.team_id, item.current_stock)
    return InventoryItemRead(**item.to_schema)


async def update_item(
    db: AsyncSession,
    user: Optional[UserContext],
    item_id: UUID,
    payload: InventoryItemUpdate,
) -> InventoryItemRead:
    user = await assert_access(db, user, Permission.UPDATE)
    item = await get_team_item(db, user.team_id, item_id)

    data = payload.model_dump(exclude_unset=True)
    if data.get("unit_id") is not None:
        await _ensure_lookup(db, InventoryUnit, "Unit", user.team_id, data["unit_id"])
    if data.get("category_id") is not None:
        await _ensure_lookup(db, InventoryCategory, "Category", user.team_id, data["category_id"])

    # InventoryItemUpdate has no stock field; descriptive columns only.
    for field, value in data.items():
        setattr(item, field, value)

    await db.commit()
    await db.refresh(item)
    return InventoryItemRead(**item.to_schema)


async def _archive(db: AsyncSession, item: InventoryItem) -> None:
    item.archived = True
    item.archived_at = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(item)


async def archive_item(db: AsyncSession, user: Optional[UserContext], item_id: UUID) -> InventoryItemRead:
    user = await assert_access(db, user, Permission.UPDATE)
    async with item_locks.hold(item_id):
        item = await get_team_item(db, user.team_id, item_id)
        await _archive(db, item)
    logger.info("Archived item %s", item_id)
    return InventoryItemRead(**item.to_schema)


async def delete_item(db: AsyncSession, user: Optional[UserContext], item_id: UUID) -> ItemDeleteResult:
    """Hard-delete an item without history; archive it when movements reference it."""
    user = await assert_access(db, user, Permission.DELETE)

    # Same lock as record_movement: no movement can land between the
    # history check and the delete.
    async with item_locks.hold(item_id):
        item = await get_team_item(db, user.team_id, item_id)

        res = await db.execute(select(StockMovement.id).where(StockMovement.item_id == item.id).limit(1))
        if res.first() is not None:
            await _archive(db, item)
            logger.info("Item %s has movements; archived instead of deleted", item_id)
            return ItemDeleteResult(result="archived", item_id=item_id)

        await db.delete(item)
        await db.commit()

    logger.info("Deleted item %s", item_id)
    return ItemDeleteResult(result="deleted", item_id=item_id)
