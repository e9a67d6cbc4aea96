from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator


MovementType = Literal["in", "out", "adjust"]
StockStatus = Literal["all", "inStock", "lowStock", "outOfStock"]

_STOCK_FIELDS = ("current_stock", "currentStock")


def _strip_or_none(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


class InventoryItemCreate(BaseModel):
    name: str = Field(..., max_length=200)
    sku: Optional[str] = Field(None, max_length=50)
    category_id: Optional[UUID] = None
    description: Optional[str] = Field(None, max_length=1000)
    unit_id: UUID
    current_stock: int = Field(0, ge=0)
    low_stock_threshold: Optional[int] = Field(None, ge=0)
    cost_per_unit: Optional[float] = Field(None, ge=0)
    location: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("sku", "description", "location", "notes")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return _strip_or_none(v)


class InventoryItemUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    sku: Optional[str] = Field(None, max_length=50)
    category_id: Optional[UUID] = None
    description: Optional[str] = Field(None, max_length=1000)
    unit_id: Optional[UUID] = None
    low_stock_threshold: Optional[int] = Field(None, ge=0)
    cost_per_unit: Optional[float] = Field(None, ge=0)
    location: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="before")
    @classmethod
    def _reject_stock(cls, data):
        if isinstance(data, dict) and any(k in data for k in _STOCK_FIELDS):
            raise ValueError("current_stock can only be changed by recording a stock movement")
        return data

    @field_validator("name")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty")
        return v

    @field_validator("sku", "description", "location", "notes")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return _strip_or_none(v)

    @field_validator("unit_id")
    @classmethod
    def _unit_not_null(cls, v: Optional[UUID]) -> Optional[UUID]:
        # unit_id may be omitted but never cleared
        if v is None:
            raise ValueError("unit_id cannot be null")
        return v


class InventoryItemFilters(BaseModel):
    category_id: Optional[UUID] = None
    status: StockStatus = "all"
    search: Optional[str] = None
    archived: bool = False
    limit: int = Field(100, ge=1, le=1000)

    @field_validator("search")
    @classmethod
    def _strip_search(cls, v: Optional[str]) -> Optional[str]:
        return _strip_or_none(v)


class InventoryItemRead(BaseModel):
    id: UUID
    team_id: UUID
    created_by: Optional[UUID] = None
    name: str
    sku: Optional[str] = None
    category_id: Optional[UUID] = None
    unit_id: UUID
    description: Optional[str] = None
    current_stock: int
    initial_stock: int
    low_stock_threshold: Optional[int] = None
    cost_per_unit: Optional[float] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    archived: bool
    archived_at: Optional[datetime] = None
    version: int
    created_at: Optional[datetime] = None


class InventoryItemList(BaseModel):
    items: List[InventoryItemRead]
    total: int


class ItemDeleteResult(BaseModel):
    result: Literal["deleted", "archived"]
    item_id: UUID


class StockMovementCreate(BaseModel):
    item_id: UUID
    type: MovementType
    quantity: int
    reason: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("reason", "notes")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return _strip_or_none(v)

    @model_validator(mode="after")
    def _quantity_range(self):
        # adjust carries the absolute target stock, in/out carry a delta
        if self.type == "adjust":
            if self.quantity < 0:
                raise ValueError("adjust quantity must be >= 0")
        elif self.quantity < 1:
            raise ValueError("Quantity must be at least 1")
        return self


class StockMovementFilters(BaseModel):
    item_id: Optional[UUID] = None
    type: Optional[MovementType] = None
    limit: int = Field(50, ge=1, le=100)


class StockMovementRead(BaseModel):
    id: UUID
    team_id: UUID
    created_by: Optional[UUID] = None
    item_id: UUID
    type: MovementType
    quantity: int
    previous_stock: int
    new_stock: int
    reason: Optional[str] = None
    notes: Optional[str] = None
    sequence: int
    created_at: datetime


class StockMovementList(BaseModel):
    movements: List[StockMovementRead]
    total: int


class StockMovementRecorded(BaseModel):
    movement: StockMovementRead
    previous_stock: int
    new_stock: int


class ItemLedgerCheck(BaseModel):
    item_id: UUID
    initial_stock: int
    current_stock: int
    replayed_stock: int
    movement_count: int
    consistent: bool
    broken_at: Optional[UUID] = None
