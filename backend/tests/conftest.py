"""
Test configuration and fixtures.

Each test gets its own SQLite file database (aiosqlite) with every table
created, a tenant with the inventory feature on its plan, and an owner whose
role grants every permission.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./.pytest-dentastock.db")
os.environ.setdefault("AUTH_SECRET", "test-secret")

import uuid
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from fastapi_users.password import PasswordHelper
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from db import models  # noqa: F401
from db.database import Base, get_async_session
from db.inventory.category import InventoryCategory
from db.inventory.unit import InventoryUnit
from db.team import Feature, Plan, Role, Team, TeamMember
from db.users import User
from main import app
from services.access import get_current_user

PASSWORD = "correct-horse"
INVENTORY_FEATURE = "denta_stock"

password_helper = PasswordHelper()


@pytest.fixture
async def engine(tmp_path):
    eng = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'dentastock.db'}",
        connect_args={"timeout": 30},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
async def plan(session):
    feature = Feature(key=INVENTORY_FEATURE, name="DentaStock", active=True)
    plan = Plan(name="Lab", member_limit=5, duration_days=365, active=True)
    plan.features = [feature]
    session.add(plan)
    await session.commit()
    return plan


@pytest.fixture
async def team(session, plan):
    team = Team(
        name="Smile Lab",
        subscribed_at=datetime.now(timezone.utc) - timedelta(days=10),
        active=True,
        is_trial=False,
        plan_id=plan.id,
    )
    session.add(team)
    await session.commit()
    return team


@pytest.fixture
def make_member(session, team):
    """Create an active user in ``team`` whose role grants ``permissions``."""

    async def _make(permissions, email=None, member_team=None):
        email = email or f"{uuid.uuid4().hex[:8]}@lab.test"
        user = User(
            email=email,
            hashed_password=password_helper.hash(PASSWORD),
            is_active=True,
            is_superuser=False,
            is_verified=True,
        )
        role = Role(name=f"role-{uuid.uuid4().hex[:8]}", level=10, permissions=list(permissions))
        session.add_all([user, role])
        await session.flush()
        session.add(
            TeamMember(
                team_id=(member_team or team).id,
                user_id=user.id,
                role_id=role.id,
                active=True,
            )
        )
        await session.commit()
        return user

    return _make


@pytest.fixture
async def owner_user(make_member):
    return await make_member(["*"], email="owner@lab.test")


@pytest.fixture
async def owner(session, owner_user):
    return await get_current_user(session, owner_user)


@pytest.fixture
async def viewer(session, make_member):
    user = await make_member(["inventory.view"])
    return await get_current_user(session, user)


@pytest.fixture
async def unit(session, team, owner):
    row = InventoryUnit(
        team_id=team.id,
        created_by=owner.user_id,
        name="Piece",
        name_ar="قطعة",
        abbreviation="pc",
        sort_order=1,
        archived=False,
    )
    session.add(row)
    await session.commit()
    return row


@pytest.fixture
async def category(session, team, owner):
    row = InventoryCategory(
        team_id=team.id,
        created_by=owner.user_id,
        name="Ceramics",
        name_ar="السيراميك",
        sort_order=1,
        archived=False,
    )
    session.add(row)
    await session.commit()
    return row


@pytest.fixture
async def client(session_factory):
    async def override_get_async_session():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_async_session] = override_get_async_session
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def auth_headers(client, owner_user):
    response = await client.post(
        "/auth/jwt/login",
        data={"username": owner_user.email, "password": PASSWORD},
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
