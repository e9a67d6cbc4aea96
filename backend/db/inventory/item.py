import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base


class InventoryItem(Base):
    __tablename__ = "inventory_items"
    __table_args__ = (
        CheckConstraint("current_stock >= 0", name="ck_inventory_items_current_stock_non_negative"),
        CheckConstraint("initial_stock >= 0", name="ck_inventory_items_initial_stock_non_negative"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    team_id = Column(Uuid, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    name = Column(String(200), nullable=False)
    sku = Column(String(50), nullable=True)
    category_id = Column(Uuid, ForeignKey("inventory_categories.id"), nullable=True, index=True)
    unit_id = Column(Uuid, ForeignKey("inventory_units.id"), nullable=False, index=True)
    description = Column(Text, nullable=True)

    # Cached result of replaying the item's movements from initial_stock.
    current_stock = Column(Integer, nullable=False, default=0)
    initial_stock = Column(Integer, nullable=False, default=0)
    # Bumped by every stock-mutating write; compare-and-swap token.
    version = Column(Integer, nullable=False, default=0)

    low_stock_threshold = Column(Integer, nullable=True)
    cost_per_unit = Column(Float, nullable=True)
    location = Column(String(200), nullable=True)
    notes = Column(Text, nullable=True)
    image_file_id = Column(String(50), nullable=True)

    archived = Column(Boolean, nullable=False, default=False, index=True)
    archived_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    category = relationship("InventoryCategory")
    unit = relationship("InventoryUnit")
    movements = relationship("StockMovement", back_populates="item", passive_deletes="all")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "team_id": self.team_id,
            "created_by": self.created_by,
            "name": self.name,
            "sku": self.sku,
            "category_id": self.category_id,
            "unit_id": self.unit_id,
            "description": self.description,
            "current_stock": int(self.current_stock or 0),
            "initial_stock": int(self.initial_stock or 0),
            "low_stock_threshold": self.low_stock_threshold,
            "cost_per_unit": self.cost_per_unit,
            "location": self.location,
            "notes": self.notes,
            "archived": bool(self.archived),
            "archived_at": self.archived_at,
            "version": int(self.version or 0),
            "created_at": self.created_at,
        }
