"""
Tests for the item registry: creation, updates, listing filters and the
delete-or-archive policy.
"""

import uuid

import pydantic
import pytest
from sqlalchemy import select

from core.exceptions import NotFoundError, PermissionDeniedError
from db.inventory.item import InventoryItem
from db.inventory.unit import InventoryUnit
from db.team import Team
from schemas.inventory import (
    InventoryItemCreate,
    InventoryItemFilters,
    InventoryItemUpdate,
    StockMovementCreate,
)
from services.items import (
    archive_item,
    create_item,
    delete_item,
    get_item,
    list_items,
    stock_status,
    update_item,
)
from services.ledger import record_movement


async def new_item(session, owner, unit, name="Die stone", **extra):
    return await create_item(session, owner, InventoryItemCreate(name=name, unit_id=unit.id, **extra))


class TestCreate:
    async def test_opening_stock_is_recorded_as_initial_stock(self, session, owner, unit, category):
        item = await new_item(session, owner, unit, current_stock=8, category_id=category.id, sku="  DS-1 ")
        assert item.current_stock == 8
        assert item.initial_stock == 8
        assert item.version == 0
        assert item.sku == "DS-1"
        assert item.category_id == category.id
        assert item.created_by == owner.user_id
        assert not item.archived

    async def test_unit_of_another_team_is_rejected(self, session, owner, plan):
        other = Team(name="Other Lab", active=True, plan_id=plan.id)
        session.add(other)
        await session.flush()
        foreign_unit = InventoryUnit(team_id=other.id, name="Box", abbreviation="box", sort_order=1, archived=False)
        session.add(foreign_unit)
        await session.commit()

        with pytest.raises(NotFoundError):
            await new_item(session, owner, foreign_unit)

    def test_blank_name_is_rejected(self, unit):
        with pytest.raises(pydantic.ValidationError):
            InventoryItemCreate(name="   ", unit_id=unit.id)

    def test_negative_opening_stock_is_rejected(self, unit):
        with pytest.raises(pydantic.ValidationError):
            InventoryItemCreate(name="Burs", unit_id=unit.id, current_stock=-1)

    async def test_viewer_cannot_create(self, session, viewer, unit):
        with pytest.raises(PermissionDeniedError):
            await new_item(session, viewer, unit)


class TestUpdate:
    async def test_partial_update_keeps_other_fields(self, session, owner, unit):
        item = await new_item(session, owner, unit, current_stock=4, location="Shelf A")
        updated = await update_item(session, owner, item.id, InventoryItemUpdate(name="Die stone IV"))
        assert updated.name == "Die stone IV"
        assert updated.location == "Shelf A"
        assert updated.current_stock == 4

    async def test_clearing_optional_field(self, session, owner, unit):
        item = await new_item(session, owner, unit, location="Shelf A")
        updated = await update_item(session, owner, item.id, InventoryItemUpdate(location=None))
        assert updated.location is None

    @pytest.mark.parametrize("field", ["current_stock", "currentStock"])
    def test_stock_cannot_be_updated_directly(self, field):
        with pytest.raises(pydantic.ValidationError):
            InventoryItemUpdate.model_validate({"name": "x", field: 99})

    def test_unit_cannot_be_cleared(self):
        with pytest.raises(pydantic.ValidationError):
            InventoryItemUpdate.model_validate({"unit_id": None})


class TestList:
    async def test_status_and_search_filters(self, session, owner, unit):
        await new_item(session, owner, unit, name="Alginate", current_stock=0, low_stock_threshold=2)
        await new_item(session, owner, unit, name="Putty", current_stock=2, low_stock_threshold=2)
        await new_item(session, owner, unit, name="Zirconia", current_stock=9, low_stock_threshold=2)
        await new_item(session, owner, unit, name="Wax", current_stock=1)

        def names(result):
            return sorted(i.name for i in result.items)

        assert names(await list_items(session, owner, InventoryItemFilters())) == ["Alginate", "Putty", "Wax", "Zirconia"]
        assert names(await list_items(session, owner, InventoryItemFilters(status="outOfStock"))) == ["Alginate"]
        assert names(await list_items(session, owner, InventoryItemFilters(status="lowStock"))) == ["Putty"]
        assert names(await list_items(session, owner, InventoryItemFilters(status="inStock"))) == ["Wax", "Zirconia"]
        assert names(await list_items(session, owner, InventoryItemFilters(search="ZIRC"))) == ["Zirconia"]

    async def test_archived_items_are_listed_separately(self, session, owner, unit):
        kept = await new_item(session, owner, unit, name="Kept")
        gone = await new_item(session, owner, unit, name="Gone")
        await archive_item(session, owner, gone.id)

        active = await list_items(session, owner, InventoryItemFilters())
        archived = await list_items(session, owner, InventoryItemFilters(archived=True))
        assert [i.id for i in active.items] == [kept.id]
        assert [i.id for i in archived.items] == [gone.id]
        assert archived.items[0].archived_at is not None

    async def test_category_filter(self, session, owner, unit, category):
        await new_item(session, owner, unit, name="Ceramic", category_id=category.id)
        await new_item(session, owner, unit, name="Loose")
        result = await list_items(session, owner, InventoryItemFilters(category_id=category.id))
        assert [i.name for i in result.items] == ["Ceramic"]
        assert result.total == 1

    def test_stock_status_without_threshold(self):
        item = InventoryItem(current_stock=0, low_stock_threshold=None)
        assert stock_status(item) == "outOfStock"
        item.current_stock = 1
        assert stock_status(item) == "inStock"


class TestDelete:
    async def test_item_without_history_is_deleted(self, session, owner, unit):
        item = await new_item(session, owner, unit, current_stock=3)
        result = await delete_item(session, owner, item.id)
        assert result.result == "deleted"

        res = await session.execute(select(InventoryItem).where(InventoryItem.id == item.id))
        assert res.scalar_one_or_none() is None

    async def test_item_with_history_is_archived(self, session, owner, unit):
        item = await new_item(session, owner, unit)
        await record_movement(session, owner, StockMovementCreate(item_id=item.id, type="in", quantity=4))

        result = await delete_item(session, owner, item.id)
        assert result.result == "archived"

        kept = await get_item(session, owner, item.id)
        assert kept.archived
        assert kept.current_stock == 4

    async def test_missing_item(self, session, owner):
        with pytest.raises(NotFoundError):
            await delete_item(session, owner, uuid.uuid4())

    async def test_viewer_cannot_delete(self, session, owner, viewer, unit):
        item = await new_item(session, owner, unit)
        with pytest.raises(PermissionDeniedError):
            await delete_item(session, viewer, item.id)
