import asyncio
import sys
from datetime import datetime, timezone
from pathlib import Path

"""
Seed a demo dental lab (plan, roles, team, owner, categories, units, items).

Opening stock is recorded as "in" movements through the ledger, so every
seeded item passes scripts/verify_ledger.py.

This script can be run from either:
- backend/: `python scripts/seed_demo_data.py`
- repo root: `python backend/scripts/seed_demo_data.py`
"""

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import func, select

from core.config import settings
from core.logging import configure_logging
from db.database import async_session_maker, create_db_and_tables
from db.inventory.item import InventoryItem
from db.team import Feature, Plan, Role, Team, TeamMember
from db.users import User
from schemas.inventory import InventoryItemCreate, StockMovementCreate
from schemas.lookups import CategoryCreate, UnitCreate
from services.access import get_current_user
from services.items import create_item
from services.ledger import record_movement
from services.lookups import categories, units

from fastapi_users.password import PasswordHelper


password_helper = PasswordHelper()

DEMO_EMAIL = "owner@dentastock.local"
DEMO_PASSWORD = "dentastock"

CATEGORIES = [
    ("Impression Materials", "مواد الطبعات"),
    ("Ceramics", "السيراميك"),
    ("Burs & Tools", "السنابل والأدوات"),
]

UNITS = [
    ("Piece", "قطعة", "pc", "قطعة"),
    ("Box", "علبة", "box", "علبة"),
    ("Gram", "غرام", "g", "غ"),
]

# name, sku, category index, unit index, opening stock, threshold, cost
ITEMS = [
    ("Alginate 500g", "ALG-500", 0, 1, 12, 5, 9.5),
    ("Silicone putty", "SIL-PUT", 0, 1, 3, 4, 32.0),
    ("Zirconia disc 98mm", "ZR-98", 1, 0, 8, 2, 145.0),
    ("Lithium disilicate ingot", "LDS-IN", 1, 0, 0, 5, 18.0),
    ("Diamond bur FG", "BUR-FG", 2, 1, 20, 10, 4.25),
    ("Die stone", None, None, 2, 2500, 1000, 0.01),
]


async def get_or_create_user(session, email: str, password: str) -> User:
    result = await session.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user:
        return user

    user = User(
        email=email,
        hashed_password=password_helper.hash(password),
        is_active=True,
        is_superuser=False,
        is_verified=True,
        full_name="Demo Owner",
        language="en",
    )
    session.add(user)
    await session.flush()
    return user


async def get_or_create_feature(session, key: str) -> Feature:
    result = await session.execute(select(Feature).where(Feature.key == key))
    feature = result.scalar_one_or_none()
    if feature:
        return feature

    feature = Feature(key=key, name="DentaStock inventory", category="inventory", active=True)
    session.add(feature)
    await session.flush()
    return feature


async def get_or_create_plan(session, name: str, feature: Feature) -> Plan:
    result = await session.execute(select(Plan).where(func.lower(Plan.name) == name.lower()))
    plan = result.scalar_one_or_none()
    if plan:
        return plan

    plan = Plan(name=name, description="Demo plan", member_limit=5, duration_days=365, active=True)
    plan.features = [feature]
    session.add(plan)
    await session.flush()
    return plan


async def get_or_create_role(session, name: str, level: int, permissions: list[str]) -> Role:
    result = await session.execute(select(Role).where(Role.name == name))
    role = result.scalar_one_or_none()
    if role:
        return role

    role = Role(name=name, level=level, permissions=permissions)
    session.add(role)
    await session.flush()
    return role


async def get_or_create_team(session, name: str, owner: User, plan: Plan, role: Role) -> Team:
    result = await session.execute(select(Team).where(Team.created_by == owner.id))
    team = result.scalar_one_or_none()
    if team:
        return team

    team = Team(
        name=name,
        created_by=owner.id,
        subscribed_at=datetime.now(timezone.utc),
        active=True,
        is_trial=False,
        country="JO",
        currency="JOD",
        plan_id=plan.id,
    )
    session.add(team)
    await session.flush()
    session.add(TeamMember(team_id=team.id, user_id=owner.id, role_id=role.id, active=True))
    await session.flush()
    return team


async def main():
    configure_logging(settings.log_level)
    await create_db_and_tables()

    async with async_session_maker() as session:
        owner = await get_or_create_user(session, DEMO_EMAIL, DEMO_PASSWORD)
        feature = await get_or_create_feature(session, settings.inventory_feature_key)
        plan = await get_or_create_plan(session, "Lab", feature)
        owner_role = await get_or_create_role(session, "owner", 100, ["*"])
        await get_or_create_role(session, "viewer", 10, ["inventory.view"])
        team = await get_or_create_team(session, "Demo Dental Lab", owner, plan, owner_role)
        await session.commit()

        existing = await session.execute(select(func.count()).select_from(InventoryItem).where(InventoryItem.team_id == team.id))
        if existing.scalar_one() > 0:
            print(f"Team {team.name} already has items, nothing to seed")
            return

        ctx = await get_current_user(session, owner)

        category_ids = []
        for name, name_ar in CATEGORIES:
            cat = await categories.create(session, ctx, CategoryCreate(name=name, name_ar=name_ar))
            category_ids.append(cat.id)

        unit_ids = []
        for name, name_ar, abbr, abbr_ar in UNITS:
            unit = await units.create(
                session, ctx, UnitCreate(name=name, name_ar=name_ar, abbreviation=abbr, abbreviation_ar=abbr_ar)
            )
            unit_ids.append(unit.id)

        for name, sku, cat_idx, unit_idx, opening, threshold, cost in ITEMS:
            item = await create_item(
                session,
                ctx,
                InventoryItemCreate(
                    name=name,
                    sku=sku,
                    category_id=category_ids[cat_idx] if cat_idx is not None else None,
                    unit_id=unit_ids[unit_idx],
                    current_stock=0,
                    low_stock_threshold=threshold,
                    cost_per_unit=cost,
                ),
            )
            if opening > 0:
                await record_movement(
                    session,
                    ctx,
                    StockMovementCreate(item_id=item.id, type="in", quantity=opening, reason="Opening stock"),
                )

        print(f"Seeded team {team.name}: {len(CATEGORIES)} categories, {len(UNITS)} units, {len(ITEMS)} items")
        print(f"Login: {DEMO_EMAIL} / {DEMO_PASSWORD}")


if __name__ == "__main__":
    asyncio.run(main())
