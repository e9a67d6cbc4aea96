import uuid

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Uuid

from ..database import Base


class InventoryCategory(Base):
    __tablename__ = "inventory_categories"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    team_id = Column(Uuid, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    name = Column(String(100), nullable=False)
    name_ar = Column(String(100), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    archived = Column(Boolean, nullable=False, default=False, index=True)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "team_id": self.team_id,
            "name": self.name,
            "name_ar": self.name_ar,
            "sort_order": int(self.sort_order or 0),
            "archived": bool(self.archived),
        }
