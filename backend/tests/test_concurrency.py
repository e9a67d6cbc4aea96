"""
Concurrent writers on one item, each with its own session and connection.
"""

import asyncio

import pytest

from core.exceptions import InsufficientStockError
from schemas.inventory import InventoryItemCreate, StockMovementCreate
from services import ledger
from services.items import create_item
from services.ledger import KeyedLock, check_item_ledger, load_item_movements, record_movement

WRITERS = 20


async def new_item(session, owner, unit, stock=0):
    return await create_item(session, owner, InventoryItemCreate(name="Alginate", unit_id=unit.id, current_stock=stock))


async def test_concurrent_receipts_are_all_counted(session, session_factory, owner, unit):
    item = await new_item(session, owner, unit)

    async def receive():
        async with session_factory() as s:
            return await record_movement(s, owner, StockMovementCreate(item_id=item.id, type="in", quantity=1))

    results = await asyncio.gather(*(receive() for _ in range(WRITERS)))

    assert sorted(r.new_stock for r in results) == list(range(1, WRITERS + 1))

    movements = await load_item_movements(session, item.id)
    assert [m.sequence for m in movements] == list(range(1, WRITERS + 1))
    for prev, nxt in zip(movements, movements[1:]):
        assert nxt.previous_stock == prev.new_stock

    check = await check_item_ledger(session, owner, item.id)
    assert check.current_stock == WRITERS
    assert check.consistent
    assert len(ledger.item_locks) == 0


async def test_concurrent_consumers_never_oversell(session, session_factory, owner, unit):
    item = await new_item(session, owner, unit, stock=5)

    async def consume():
        async with session_factory() as s:
            try:
                await record_movement(s, owner, StockMovementCreate(item_id=item.id, type="out", quantity=2))
                return True
            except InsufficientStockError:
                return False

    outcomes = await asyncio.gather(*(consume() for _ in range(6)))

    assert outcomes.count(True) == 2
    check = await check_item_ledger(session, owner, item.id)
    assert check.current_stock == 1
    assert check.movement_count == 2
    assert check.consistent


async def test_keyed_lock_serializes_per_key():
    locks = KeyedLock()
    order = []

    async def hold(key, tag, delay):
        async with locks.hold(key):
            order.append(f"{tag}-start")
            await asyncio.sleep(delay)
            order.append(f"{tag}-end")

    await asyncio.gather(hold("a", "first", 0.02), hold("a", "second", 0), hold("b", "other", 0))

    assert order.index("first-end") < order.index("second-start")
    assert order.index("other-end") < order.index("first-end")
    assert len(locks) == 0


async def test_keyed_lock_released_on_error():
    locks = KeyedLock()
    with pytest.raises(RuntimeError):
        async with locks.hold("a"):
            raise RuntimeError("boom")
    assert len(locks) == 0
