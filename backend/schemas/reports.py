from datetime import date
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from schemas.inventory import InventoryItemRead, StockMovementRead


ReportPeriod = Literal["7d", "30d", "90d", "all"]


class DashboardStats(BaseModel):
    total_items: int
    low_stock: int
    out_of_stock: int
    total_value: float


class Dashboard(BaseModel):
    stats: DashboardStats
    low_stock_items: List[InventoryItemRead]
    recent_movements: List[StockMovementRead]


class ReportSummary(BaseModel):
    total_items: int
    total_value: float
    total_movements: int
    total_in: int
    total_out: int
    total_adjust: int
    low_stock_count: int
    out_of_stock_count: int


class CategoryStock(BaseModel):
    # "uncategorized" for the bucket of items without a category
    category_id: str
    category_name: str
    category_name_ar: Optional[str] = None
    item_count: int
    total_stock: int
    total_value: float


class MovementTrend(BaseModel):
    date: date
    in_: int = Field(0, alias="in")
    out: int = 0
    adjust: int = 0

    model_config = ConfigDict(populate_by_name=True)


class TopMovingItem(BaseModel):
    item_id: UUID
    item_name: str
    is_archived: bool
    total_in: int
    total_out: int
    total_movement: int


class LowStockItem(BaseModel):
    item_id: UUID
    item_name: str
    current_stock: int
    threshold: int
    deficit: int


class Report(BaseModel):
    period: ReportPeriod
    summary: ReportSummary
    stock_by_category: List[CategoryStock]
    movement_trends: List[MovementTrend]
    top_moving_items: List[TopMovingItem]
    low_stock_items: List[LowStockItem]
