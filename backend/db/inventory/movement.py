import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from ..database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StockMovement(Base):
    __tablename__ = "stock_movements"
    __table_args__ = (
        # One movement per item version: two writers that read the same
        # version cannot both land a movement.
        UniqueConstraint("item_id", "sequence", name="ux_stock_movements_item_sequence"),
        CheckConstraint("type IN ('in', 'out', 'adjust')", name="ck_stock_movements_type"),
        CheckConstraint("previous_stock >= 0 AND new_stock >= 0", name="ck_stock_movements_snapshots"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    team_id = Column(Uuid, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # RESTRICT: an item with movements is archived, never hard-deleted.
    item_id = Column(Uuid, ForeignKey("inventory_items.id", ondelete="RESTRICT"), nullable=False, index=True)

    type = Column(String(10), nullable=False, index=True)  # 'in' | 'out' | 'adjust'
    quantity = Column(Integer, nullable=False)
    previous_stock = Column(Integer, nullable=False)
    new_stock = Column(Integer, nullable=False)
    reason = Column(String(500), nullable=True)
    notes = Column(Text, nullable=True)

    sequence = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)

    item = relationship("InventoryItem", back_populates="movements")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "team_id": self.team_id,
            "created_by": self.created_by,
            "item_id": self.item_id,
            "type": self.type,
            "quantity": int(self.quantity),
            "previous_stock": int(self.previous_stock),
            "new_stock": int(self.new_stock),
            "reason": self.reason,
            "notes": self.notes,
            "sequence": int(self.sequence),
            "created_at": self.created_at,
        }
