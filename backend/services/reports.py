"""Dashboard and report aggregation over a team's items and movements."""

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.inventory.category import InventoryCategory
from db.inventory.item import InventoryItem
from db.inventory.movement import StockMovement
from schemas.access import UserContext
from schemas.inventory import InventoryItemRead, StockMovementRead
from schemas.reports import (
    CategoryStock,
    Dashboard,
    DashboardStats,
    LowStockItem,
    MovementTrend,
    Report,
    ReportPeriod,
    ReportSummary,
    TopMovingItem,
)
from services.access import Permission, assert_access

logger = logging.getLogger(__name__)

PERIOD_DAYS = {"7d": 7, "30d": 30, "90d": 90, "all": None}
UNCATEGORIZED_ID = "uncategorized"
UNCATEGORIZED_NAME = "Uncategorized"
UNCATEGORIZED_NAME_AR = "غير مصنف"
DASHBOARD_LIST_SIZE = 10
TOP_MOVING_SIZE = 10
# upper bound on rows a report aggregates
REPORT_ROW_LIMIT = 1000


def _value(item) -> float:
    return int(item.current_stock) * float(item.cost_per_unit or 0)


def _is_low(item) -> bool:
    return bool(item.low_stock_threshold) and item.current_stock <= item.low_stock_threshold


def _utc_day(value: datetime) -> date:
    if value.tzinfo is None:
        return value.date()
    return value.astimezone(timezone.utc).date()


def period_start(period: ReportPeriod, now: Optional[datetime] = None) -> Optional[datetime]:
    days = PERIOD_DAYS[period]
    if days is None:
        return None
    now = now or datetime.now(timezone.utc)
    return now - timedelta(days=days)


def dashboard_stats(items: Sequence, recent_movements: Sequence) -> Dashboard:
    """Stats over the active items; ``recent_movements`` is expected newest first."""
    low_stock = 0
    out_of_stock = 0
    total_value = 0.0
    for item in items:
        if item.current_stock == 0:
            out_of_stock += 1
        elif _is_low(item):
            low_stock += 1
        total_value += _value(item)

    low_stock_items = [it for it in items if _is_low(it)][:DASHBOARD_LIST_SIZE]

    return Dashboard(
        stats=DashboardStats(
            total_items=len(items),
            low_stock=low_stock,
            out_of_stock=out_of_stock,
            total_value=total_value,
        ),
        low_stock_items=[InventoryItemRead(**it.to_schema) for it in low_stock_items],
        recent_movements=[StockMovementRead(**m.to_schema) for m in recent_movements[:DASHBOARD_LIST_SIZE]],
    )


def stock_by_category(active_items: Sequence, categories: Iterable) -> List[CategoryStock]:
    out = []
    for cat in categories:
        in_cat = [it for it in active_items if it.category_id == cat.id]
        out.append(
            CategoryStock(
                category_id=str(cat.id),
                category_name=cat.name,
                category_name_ar=cat.name_ar,
                item_count=len(in_cat),
                total_stock=sum(int(it.current_stock) for it in in_cat),
                total_value=sum(_value(it) for it in in_cat),
            )
        )

    uncategorized = [it for it in active_items if it.category_id is None]
    if uncategorized:
        out.append(
            CategoryStock(
                category_id=UNCATEGORIZED_ID,
                category_name=UNCATEGORIZED_NAME,
                category_name_ar=UNCATEGORIZED_NAME_AR,
                item_count=len(uncategorized),
                total_stock=sum(int(it.current_stock) for it in uncategorized),
                total_value=sum(_value(it) for it in uncategorized),
            )
        )
    return out


def movement_trends(movements: Iterable) -> List[MovementTrend]:
    by_day = defaultdict(lambda: {"in": 0, "out": 0, "adjust": 0})
    for m in movements:
        by_day[_utc_day(m.created_at)][m.type] += int(m.quantity)
    return [MovementTrend(date=day, **totals) for day, totals in sorted(by_day.items())]


def top_moving_items(movements: Iterable, all_items: Iterable) -> List[TopMovingItem]:
    # adjust is an absolute target, not a flow: it ranks the item without adding to it
    totals = defaultdict(lambda: {"in": 0, "out": 0})
    for m in movements:
        t = totals[m.item_id]
        if m.type in t:
            t[m.type] += int(m.quantity)

    by_id = {it.id: it for it in all_items}
    ranked = []
    for item_id, t in totals.items():
        item = by_id.get(item_id)
        ranked.append(
            TopMovingItem(
                item_id=item_id,
                item_name=item.name if item is not None else "Unknown",
                is_archived=bool(item.archived) if item is not None else False,
                total_in=t["in"],
                total_out=t["out"],
                total_movement=t["in"] + t["out"],
            )
        )
    ranked.sort(key=lambda r: r.total_movement, reverse=True)
    return ranked[:TOP_MOVING_SIZE]


def low_stock_report(active_items: Iterable) -> List[LowStockItem]:
    rows = [
        LowStockItem(
            item_id=it.id,
            item_name=it.name,
            current_stock=int(it.current_stock),
            threshold=int(it.low_stock_threshold),
            deficit=int(it.low_stock_threshold) - int(it.current_stock),
        )
        for it in active_items
        if _is_low(it)
    ]
    rows.sort(key=lambda r: r.deficit, reverse=True)
    return rows


def build_report(
    active_items: Sequence,
    all_items: Sequence,
    movements: Sequence,
    categories: Sequence,
    period: ReportPeriod = "30d",
) -> Report:
    low_stock_items = low_stock_report(active_items)

    def total_of(kind: str) -> int:
        return sum(int(m.quantity) for m in movements if m.type == kind)

    summary = ReportSummary(
        total_items=len(active_items),
        total_value=sum(_value(it) for it in active_items),
        total_movements=len(movements),
        total_in=total_of("in"),
        total_out=total_of("out"),
        total_adjust=total_of("adjust"),
        low_stock_count=len(low_stock_items),
        out_of_stock_count=sum(1 for it in active_items if it.current_stock == 0),
    )

    return Report(
        period=period,
        summary=summary,
        stock_by_category=stock_by_category(active_items, categories),
        movement_trends=movement_trends(movements),
        top_moving_items=top_moving_items(movements, all_items),
        low_stock_items=low_stock_items,
    )


async def _team_items(db: AsyncSession, team_id, include_archived: bool) -> List[InventoryItem]:
    stmt = select(InventoryItem).where(InventoryItem.team_id == team_id)
    if not include_archived:
        stmt = stmt.where(InventoryItem.archived == False)  # noqa: E712
    res = await db.execute(stmt.order_by(InventoryItem.created_at.desc()).limit(REPORT_ROW_LIMIT))
    return list(res.scalars().all())


async def get_dashboard(db: AsyncSession, user: Optional[UserContext]) -> Dashboard:
    user = await assert_access(db, user, Permission.VIEW)

    items = await _team_items(db, user.team_id, include_archived=False)
    res = await db.execute(
        select(StockMovement)
        .where(StockMovement.team_id == user.team_id)
        .order_by(StockMovement.created_at.desc(), StockMovement.sequence.desc())
        .limit(DASHBOARD_LIST_SIZE)
    )
    return dashboard_stats(items, list(res.scalars().all()))


async def get_report(db: AsyncSession, user: Optional[UserContext], period: ReportPeriod = "30d") -> Report:
    user = await assert_access(db, user, Permission.VIEW)

    all_items = await _team_items(db, user.team_id, include_archived=True)
    active_items = [it for it in all_items if not it.archived]

    stmt = select(StockMovement).where(StockMovement.team_id == user.team_id)
    start = period_start(period)
    if start is not None:
        stmt = stmt.where(StockMovement.created_at > start)
    res = await db.execute(stmt.order_by(StockMovement.created_at.desc()).limit(REPORT_ROW_LIMIT))
    movements = list(res.scalars().all())

    res = await db.execute(
        select(InventoryCategory)
        .where(InventoryCategory.team_id == user.team_id, InventoryCategory.archived == False)  # noqa: E712
        .order_by(InventoryCategory.sort_order.asc())
    )
    categories = list(res.scalars().all())

    logger.debug(
        "Building %s report for team %s over %d items and %d movements",
        period, user.team_id, len(all_items), len(movements),
    )
    return build_report(active_items, all_items, movements, categories, period)
