"""
Tests for dashboard stats and report aggregation.
"""

import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from schemas.inventory import InventoryItemCreate, StockMovementCreate
from services.items import archive_item, create_item
from services.ledger import record_movement
from services.reports import build_report, get_dashboard, get_report, period_start

DAY_ONE = datetime(2026, 5, 4, 9, 30, tzinfo=timezone.utc)
DAY_TWO = DAY_ONE + timedelta(days=1)


def item(name, stock, threshold=None, cost=None, category_id=None, archived=False):
    return SimpleNamespace(
        id=uuid.uuid4(),
        name=name,
        current_stock=stock,
        low_stock_threshold=threshold,
        cost_per_unit=cost,
        category_id=category_id,
        archived=archived,
    )


def mv(target, type_, quantity, at):
    return SimpleNamespace(item_id=target.id, type=type_, quantity=quantity, created_at=at)


class TestBuildReport:
    def setup_method(self):
        self.ceramics = SimpleNamespace(id=uuid.uuid4(), name="Ceramics", name_ar="السيراميك")
        self.empty = SimpleNamespace(id=uuid.uuid4(), name="Metals", name_ar=None)
        self.disc = item("Disc", 2, threshold=5, cost=100.0, category_id=self.ceramics.id)
        self.ingot = item("Ingot", 0, threshold=1, cost=10.0, category_id=self.ceramics.id)
        self.wax = item("Wax", 30, threshold=10, cost=0.5)
        self.old = item("Old burs", 0, archived=True)
        self.active = [self.disc, self.ingot, self.wax]
        self.all = self.active + [self.old]
        self.movements = [
            mv(self.disc, "in", 10, DAY_ONE),
            mv(self.disc, "out", 8, DAY_TWO),
            mv(self.wax, "adjust", 30, DAY_TWO),
            mv(self.old, "out", 40, DAY_ONE),
        ]

    def report(self):
        return build_report(self.active, self.all, self.movements, [self.ceramics, self.empty], "30d")

    def test_summary(self):
        summary = self.report().summary
        assert summary.total_items == 3
        assert summary.total_value == 2 * 100.0 + 30 * 0.5
        assert summary.total_movements == 4
        assert (summary.total_in, summary.total_out, summary.total_adjust) == (10, 48, 30)
        assert summary.low_stock_count == 2
        assert summary.out_of_stock_count == 1

    def test_stock_by_category_with_uncategorized_bucket(self):
        rows = {row.category_name: row for row in self.report().stock_by_category}
        assert rows["Ceramics"].item_count == 2
        assert rows["Ceramics"].total_stock == 2
        assert rows["Ceramics"].total_value == 200.0
        assert rows["Metals"].item_count == 0
        assert rows["Uncategorized"].category_id == "uncategorized"
        assert rows["Uncategorized"].category_name_ar == "غير مصنف"
        assert rows["Uncategorized"].total_stock == 30

    def test_no_uncategorized_bucket_when_all_categorized(self):
        report = build_report([self.disc], [self.disc], [], [self.ceramics])
        assert [row.category_id for row in report.stock_by_category] == [str(self.ceramics.id)]

    def test_trends_by_day_ascending(self):
        trends = self.report().movement_trends
        assert [t.date for t in trends] == [DAY_ONE.date(), DAY_TWO.date()]
        assert (trends[0].in_, trends[0].out, trends[0].adjust) == (10, 40, 0)
        assert (trends[1].in_, trends[1].out, trends[1].adjust) == (0, 8, 30)
        assert trends[0].model_dump(by_alias=True)["in"] == 10

    def test_top_moving_items_include_archived(self):
        top = self.report().top_moving_items
        assert [t.item_name for t in top] == ["Old burs", "Disc", "Wax"]
        assert top[0].is_archived
        assert (top[1].total_in, top[1].total_out, top[1].total_movement) == (10, 8, 18)
        assert top[2].total_movement == 0

    def test_low_stock_sorted_by_deficit(self):
        low = self.report().low_stock_items
        assert [(row.item_name, row.deficit) for row in low] == [("Disc", 3), ("Ingot", 1)]

    def test_period_start(self):
        now = datetime(2026, 5, 10, tzinfo=timezone.utc)
        assert period_start("7d", now) == now - timedelta(days=7)
        assert period_start("90d", now) == now - timedelta(days=90)
        assert period_start("all", now) is None


class TestLoaders:
    async def test_dashboard(self, session, owner, unit):
        empty = await create_item(session, owner, InventoryItemCreate(name="Empty", unit_id=unit.id, low_stock_threshold=3))
        low = await create_item(
            session, owner, InventoryItemCreate(name="Low", unit_id=unit.id, current_stock=2, low_stock_threshold=3, cost_per_unit=4.0)
        )
        plenty = await create_item(
            session, owner, InventoryItemCreate(name="Plenty", unit_id=unit.id, current_stock=50, cost_per_unit=1.0)
        )
        gone = await create_item(session, owner, InventoryItemCreate(name="Gone", unit_id=unit.id, current_stock=9, cost_per_unit=100.0))
        await archive_item(session, owner, gone.id)
        await record_movement(session, owner, StockMovementCreate(item_id=plenty.id, type="out", quantity=10))

        dashboard = await get_dashboard(session, owner)
        assert dashboard.stats.total_items == 3
        assert dashboard.stats.out_of_stock == 1
        assert dashboard.stats.low_stock == 1
        assert dashboard.stats.total_value == 2 * 4.0 + 40 * 1.0
        assert {i.id for i in dashboard.low_stock_items} == {empty.id, low.id}
        assert [m.item_id for m in dashboard.recent_movements] == [plenty.id]

    async def test_report_period_filters_movements(self, session, owner, unit):
        disc = await create_item(session, owner, InventoryItemCreate(name="Disc", unit_id=unit.id))
        recorded = await record_movement(session, owner, StockMovementCreate(item_id=disc.id, type="in", quantity=6))

        report = await get_report(session, owner, "7d")
        assert report.period == "7d"
        assert report.summary.total_in == 6
        assert report.top_moving_items[0].item_id == disc.id
        assert report.movement_trends[0].date == recorded.movement.created_at.date()
