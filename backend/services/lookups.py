"""Category and unit registries: team-scoped lookup rows referenced by items."""

import logging
from typing import Optional, Type
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import InUseError, NotFoundError
from db.inventory.category import InventoryCategory
from db.inventory.item import InventoryItem
from db.inventory.unit import InventoryUnit
from schemas.access import UserContext
from schemas.lookups import CategoryRead, UnitRead
from services.access import Permission, assert_access

logger = logging.getLogger(__name__)


class LookupRegistry:
    def __init__(self, model, read_schema: Type[BaseModel], entity: str, item_column):
        self.model = model
        self.read_schema = read_schema
        self.entity = entity
        # InventoryItem column that references this lookup
        self.item_column = item_column

    async def _get(self, db: AsyncSession, team_id: UUID, row_id: UUID):
        res = await db.execute(select(self.model).where(self.model.id == row_id))
        row = res.scalar_one_or_none()
        if row is None or row.team_id != team_id:
            raise NotFoundError(self.entity, row_id)
        return row

    async def list(self, db: AsyncSession, user: Optional[UserContext]) -> list:
        user = await assert_access(db, user, Permission.VIEW)
        res = await db.execute(
            select(self.model)
            .where(self.model.team_id == user.team_id, self.model.archived == False)  # noqa: E712
            .order_by(self.model.sort_order.asc(), func.lower(self.model.name).asc())
        )
        return [self.read_schema(**r.to_schema) for r in res.scalars().all()]

    async def create(self, db: AsyncSession, user: Optional[UserContext], payload: BaseModel):
        user = await assert_access(db, user, Permission.CREATE)

        data = payload.model_dump()
        if data.get("sort_order") is None:
            res = await db.execute(
                select(func.max(self.model.sort_order)).where(self.model.team_id == user.team_id)
            )
            data["sort_order"] = int(res.scalar_one_or_none() or 0) + 1

        row = self.model(team_id=user.team_id, created_by=user.user_id, archived=False, **data)
        db.add(row)
        await db.commit()
        await db.refresh(row)
        logger.info("Created %s %s (%s) in team %s", self.entity.lower(), row.id, row.name, user.team_id)
        return self.read_schema(**row.to_schema)

    async def update(self, db: AsyncSession, user: Optional[UserContext], row_id: UUID, payload: BaseModel):
        user = await assert_access(db, user, Permission.UPDATE)
        row = await self._get(db, user.team_id, row_id)

        for field, value in payload.model_dump(exclude_unset=True).items():
            # required columns can be omitted but not cleared
            if value is None and field in ("name", "abbreviation", "sort_order"):
                continue
            setattr(row, field, value)

        await db.commit()
        await db.refresh(row)
        return self.read_schema(**row.to_schema)

    async def archive(self, db: AsyncSession, user: Optional[UserContext], row_id: UUID):
        user = await assert_access(db, user, Permission.UPDATE)
        row = await self._get(db, user.team_id, row_id)
        row.archived = True
        await db.commit()
        await db.refresh(row)
        return self.read_schema(**row.to_schema)

    async def delete(self, db: AsyncSession, user: Optional[UserContext], row_id: UUID) -> dict:
        """Delete a row no item references; archived items count as references."""
        user = await assert_access(db, user, Permission.DELETE)
        row = await self._get(db, user.team_id, row_id)

        res = await db.execute(select(InventoryItem.id).where(self.item_column == row_id).limit(1))
        if res.first() is not None:
            raise InUseError(self.entity, row_id)

        await db.delete(row)
        await db.commit()
        logger.info("Deleted %s %s", self.entity.lower(), row_id)
        return {"deleted": True, "id": row_id}


categories = LookupRegistry(InventoryCategory, CategoryRead, "Category", InventoryItem.category_id)
units = LookupRegistry(InventoryUnit, UnitRead, "Unit", InventoryItem.unit_id)
