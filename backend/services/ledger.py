"""
Stock movement ledger.

An item's ``current_stock`` is the fold of its movements, in sequence order,
over the stock it was created with::

    current_stock == replay_stock(item.initial_stock, movements)

``record_movement`` is the only code path that writes ``current_stock`` after
creation. It serializes writers of the same item twice over:

* an in-process ``asyncio.Lock`` per item id (``item_locks``), so writers in
  this process queue instead of retrying, and
* a compare-and-swap on ``inventory_items.version``, so writers in other
  processes that read the same stock lose the update and retry from a fresh
  read. The swap also requires the row to be unarchived, and an ``out``
  is only rejected for insufficient stock once the stored version is
  confirmed unchanged. ``stock_movements(item_id, sequence)`` is unique with
  ``sequence`` = the version the write produced, so a stale writer cannot
  land a movement either.

The stock update and the movement insert share one database transaction.
"""

import asyncio
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from dataclasses import dataclass
from functools import reduce
from typing import Hashable, Iterable, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from core.config import settings
from core.exceptions import (
    ArchivedItemError,
    ConcurrentModificationError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from db.inventory.item import InventoryItem
from db.inventory.movement import StockMovement
from schemas.access import UserContext
from schemas.inventory import (
    ItemLedgerCheck,
    StockMovementCreate,
    StockMovementFilters,
    StockMovementList,
    StockMovementRead,
    StockMovementRecorded,
)
from services.access import Permission, assert_access

logger = logging.getLogger(__name__)

IN = "in"
OUT = "out"
ADJUST = "adjust"
MOVEMENT_TYPES = (IN, OUT, ADJUST)


def validate_movement(movement_type: str, quantity: int) -> None:
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError(f"Invalid movement type: {movement_type!r}", field="type")
    if movement_type == ADJUST:
        if quantity < 0:
            raise ValidationError("adjust quantity must be >= 0", field="quantity")
    elif quantity < 1:
        raise ValidationError("Quantity must be at least 1", field="quantity")


def apply_movement(previous_stock: int, movement_type: str, quantity: int) -> int:
    """Stock after one movement. ``adjust`` takes ``quantity`` as the new absolute stock."""
    validate_movement(movement_type, quantity)
    if movement_type == IN:
        return previous_stock + quantity
    if movement_type == OUT:
        if quantity > previous_stock:
            raise InsufficientStockError(available=previous_stock, requested=quantity)
        return previous_stock - quantity
    return quantity


def replay_stock(initial_stock: int, movements: Iterable) -> int:
    """Fold ``apply_movement`` over movements (oldest first)."""
    return reduce(lambda stock, m: apply_movement(stock, m.type, int(m.quantity)), movements, int(initial_stock))


@dataclass
class LedgerCheck:
    replayed_stock: int
    movement_count: int
    # first movement whose snapshots do not chain, if any
    broken_at: Optional[UUID] = None

    @property
    def chained(self) -> bool:
        return self.broken_at is None


def verify_chain(initial_stock: int, movements: Sequence) -> LedgerCheck:
    stock = int(initial_stock)
    broken_at = None
    for m in movements:
        try:
            expected = apply_movement(stock, m.type, int(m.quantity))
        except (InsufficientStockError, ValidationError):
            expected = None
        if broken_at is None and (
            expected is None or int(m.previous_stock) != stock or int(m.new_stock) != expected
        ):
            broken_at = m.id
        stock = expected if expected is not None else int(m.new_stock)
    return LedgerCheck(replayed_stock=stock, movement_count=len(movements), broken_at=broken_at)


class KeyedLock:
    """One asyncio.Lock per key, dropped once nobody holds or waits on it."""

    def __init__(self):
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._users: dict[Hashable, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, key: Hashable):
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                self._locks.pop(key, None)

    def __len__(self) -> int:
        return len(self._locks)


item_locks = KeyedLock()


async def _load_item(db: AsyncSession, team_id: UUID, item_id: UUID) -> InventoryItem:
    res = await db.execute(
        select(InventoryItem)
        .where(InventoryItem.id == item_id)
        .execution_options(populate_existing=True)
    )
    item = res.scalar_one_or_none()
    if item is None or item.team_id != team_id:
        raise NotFoundError("Item", item_id)
    return item


async def _swap_stock(db: AsyncSession, item_id: UUID, expected_version: int, new_stock: int) -> bool:
    res = await db.execute(
        update(InventoryItem)
        .where(
            InventoryItem.id == item_id,
            InventoryItem.version == expected_version,
            InventoryItem.archived.is_(False),
        )
        .values(current_stock=new_stock, version=expected_version + 1)
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1


async def _is_current(db: AsyncSession, item_id: UUID, version: int) -> bool:
    """True while the stored row still matches what this writer loaded."""
    res = await db.execute(
        select(InventoryItem.version, InventoryItem.archived).where(InventoryItem.id == item_id)
    )
    row = res.one_or_none()
    return row is not None and int(row.version) == version and not row.archived


async def record_movement(
    db: AsyncSession,
    user: Optional[UserContext],
    payload: StockMovementCreate,
    *,
    locks: KeyedLock = item_locks,
    max_attempts: Optional[int] = None,
) -> StockMovementRecorded:
    validate_movement(payload.type, payload.quantity)
    user = await assert_access(db, user, Permission.UPDATE)
    max_attempts = max_attempts or settings.movement_max_attempts

    async with locks.hold(payload.item_id):
        for attempt in range(1, max_attempts + 1):
            item = await _load_item(db, user.team_id, payload.item_id)
            if item.archived:
                raise ArchivedItemError(item.id)

            previous_stock = int(item.current_stock)
            version = int(item.version)
            try:
                new_stock = apply_movement(previous_stock, payload.type, payload.quantity)
            except InsufficientStockError:
                # Only reject against the stock that is stored right now.
                if await _is_current(db, payload.item_id, version):
                    await db.rollback()
                    raise
                await db.rollback()
                logger.warning(
                    "Stock of item %s changed before rejecting movement (attempt %d/%d), retrying",
                    payload.item_id, attempt, max_attempts,
                )
                continue

            try:
                if not await _swap_stock(db, payload.item_id, version, new_stock):
                    # Lost to another writer or to archiving; the next load decides.
                    await db.rollback()
                    logger.warning(
                        "Stock of item %s changed during movement (attempt %d/%d), retrying",
                        payload.item_id, attempt, max_attempts,
                    )
                    continue

                movement = StockMovement(
                    team_id=user.team_id,
                    created_by=user.user_id,
                    item_id=payload.item_id,
                    type=payload.type,
                    quantity=payload.quantity,
                    previous_stock=previous_stock,
                    new_stock=new_stock,
                    reason=payload.reason,
                    notes=payload.notes,
                    sequence=version + 1,
                )
                db.add(movement)
                await db.commit()
            except IntegrityError:
                await db.rollback()
                logger.warning(
                    "Movement sequence %d of item %s already taken (attempt %d/%d), retrying",
                    version + 1, payload.item_id, attempt, max_attempts,
                )
                continue
            except Exception:
                await db.rollback()
                logger.exception("Recording %s movement for item %s failed", payload.type, payload.item_id)
                raise

            # The UPDATE bypassed the identity map; refresh the loaded row
            # without marking it dirty.
            set_committed_value(item, "current_stock", new_stock)
            set_committed_value(item, "version", version + 1)
            logger.info(
                "Recorded %s movement %s on item %s: %d -> %d",
                payload.type, movement.id, payload.item_id, previous_stock, new_stock,
            )
            return StockMovementRecorded(
                movement=StockMovementRead(**movement.to_schema),
                previous_stock=previous_stock,
                new_stock=new_stock,
            )

    raise ConcurrentModificationError(payload.item_id, max_attempts)


async def list_movements(
    db: AsyncSession,
    user: Optional[UserContext],
    filters: StockMovementFilters,
) -> StockMovementList:
    user = await assert_access(db, user, Permission.VIEW)

    conditions = [StockMovement.team_id == user.team_id]
    if filters.item_id:
        conditions.append(StockMovement.item_id == filters.item_id)
    if filters.type:
        conditions.append(StockMovement.type == filters.type)

    total = (await db.execute(select(func.count()).select_from(StockMovement).where(*conditions))).scalar_one()
    res = await db.execute(
        select(StockMovement)
        .where(*conditions)
        .order_by(StockMovement.created_at.desc(), StockMovement.sequence.desc())
        .limit(filters.limit)
    )
    movements = [StockMovementRead(**m.to_schema) for m in res.scalars().all()]
    return StockMovementList(movements=movements, total=int(total))


async def load_item_movements(db: AsyncSession, item_id: UUID) -> list[StockMovement]:
    """All movements of an item, oldest first."""
    res = await db.execute(
        select(StockMovement)
        .where(StockMovement.item_id == item_id)
        .order_by(StockMovement.sequence.asc())
    )
    return list(res.scalars().all())


async def check_item_ledger(db: AsyncSession, user: Optional[UserContext], item_id: UUID) -> ItemLedgerCheck:
    user = await assert_access(db, user, Permission.VIEW)
    item = await _load_item(db, user.team_id, item_id)
    movements = await load_item_movements(db, item.id)
    check = verify_chain(item.initial_stock, movements)
    consistent = check.chained and check.replayed_stock == int(item.current_stock)
    if not consistent:
        logger.error(
            "Ledger of item %s is inconsistent: current=%d replayed=%d broken_at=%s",
            item.id, item.current_stock, check.replayed_stock, check.broken_at,
        )
    return ItemLedgerCheck(
        item_id=item.id,
        initial_stock=int(item.initial_stock),
        current_stock=int(item.current_stock),
        replayed_stock=check.replayed_stock,
        movement_count=check.movement_count,
        consistent=consistent,
        broken_at=check.broken_at,
    )
