"""
Tests for the category and unit registries.
"""

import pydantic
import pytest

from core.exceptions import InUseError, NotFoundError, PermissionDeniedError
from schemas.inventory import InventoryItemCreate
from schemas.lookups import CategoryCreate, CategoryUpdate, UnitCreate, UnitUpdate
from services.items import archive_item, create_item
from services.lookups import categories, units


class TestCategories:
    async def test_sort_order_defaults_to_next_position(self, session, owner):
        first = await categories.create(session, owner, CategoryCreate(name="Ceramics"))
        second = await categories.create(session, owner, CategoryCreate(name="Metals", name_ar="معادن"))
        pinned = await categories.create(session, owner, CategoryCreate(name="Waxes", sort_order=10))
        after_pinned = await categories.create(session, owner, CategoryCreate(name="Burs"))

        assert first.sort_order == 1
        assert second.sort_order == 2
        assert pinned.sort_order == 10
        assert after_pinned.sort_order == 11

    async def test_list_is_sorted_and_skips_archived(self, session, owner):
        b = await categories.create(session, owner, CategoryCreate(name="B", sort_order=2))
        a = await categories.create(session, owner, CategoryCreate(name="A", sort_order=1))
        gone = await categories.create(session, owner, CategoryCreate(name="Gone", sort_order=0))
        await categories.archive(session, owner, gone.id)

        listed = await categories.list(session, owner)
        assert [c.id for c in listed] == [a.id, b.id]

    async def test_update_renames(self, session, owner):
        cat = await categories.create(session, owner, CategoryCreate(name="Ceramic", name_ar="خزف"))
        updated = await categories.update(session, owner, cat.id, CategoryUpdate(name=" Ceramics "))
        assert updated.name == "Ceramics"
        assert updated.name_ar == "خزف"

    async def test_delete_unused(self, session, owner):
        cat = await categories.create(session, owner, CategoryCreate(name="Temp"))
        result = await categories.delete(session, owner, cat.id)
        assert result["deleted"] is True
        with pytest.raises(NotFoundError):
            await categories.update(session, owner, cat.id, CategoryUpdate(name="Again"))

    async def test_delete_referenced_by_archived_item_is_refused(self, session, owner, unit):
        cat = await categories.create(session, owner, CategoryCreate(name="Used"))
        item = await create_item(
            session, owner, InventoryItemCreate(name="Disc", unit_id=unit.id, category_id=cat.id)
        )
        await archive_item(session, owner, item.id)

        with pytest.raises(InUseError) as exc:
            await categories.delete(session, owner, cat.id)
        assert exc.value.code == "IN_USE"
        assert exc.value.status_code == 409
        assert "category" in exc.value.message

    async def test_viewer_can_list_but_not_create(self, session, viewer):
        assert await categories.list(session, viewer) == []
        with pytest.raises(PermissionDeniedError):
            await categories.create(session, viewer, CategoryCreate(name="Nope"))

    def test_blank_name_is_rejected(self):
        with pytest.raises(pydantic.ValidationError):
            CategoryCreate(name="  ")


class TestUnits:
    async def test_create_and_list(self, session, owner):
        await units.create(session, owner, UnitCreate(name="Box", abbreviation="box"))
        await units.create(session, owner, UnitCreate(name="Gram", name_ar="غرام", abbreviation="g", abbreviation_ar="غ"))

        listed = await units.list(session, owner)
        assert [(u.name, u.sort_order) for u in listed] == [("Box", 1), ("Gram", 2)]
        assert listed[1].abbreviation_ar == "غ"

    async def test_update_keeps_abbreviation_when_omitted(self, session, owner):
        unit = await units.create(session, owner, UnitCreate(name="Piece", abbreviation="pc"))
        updated = await units.update(session, owner, unit.id, UnitUpdate(name="Pieces"))
        assert updated.abbreviation == "pc"

    async def test_delete_in_use_unit_is_refused(self, session, owner, unit):
        await create_item(session, owner, InventoryItemCreate(name="Disc", unit_id=unit.id))
        with pytest.raises(InUseError):
            await units.delete(session, owner, unit.id)

    def test_abbreviation_length(self):
        with pytest.raises(pydantic.ValidationError):
            UnitCreate(name="Milliliter", abbreviation="x" * 11)
        with pytest.raises(pydantic.ValidationError):
            UnitCreate(name="Milliliter", abbreviation=" ")
