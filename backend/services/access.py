"""
Access gate for inventory operations.

Every inventory operation calls :func:`assert_access` once, before it reads
or writes inventory rows. The gate composes three independent checks on data
owned by the identity and plan tables:

1. the team's plan includes the inventory feature,
2. the team's trial or paid subscription has not expired,
3. the member's role grants the permission (``*`` grants everything),

and raises on the first failing one.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import (
    FeatureNotAvailableError,
    NoTeamError,
    PermissionDeniedError,
    SubscriptionExpiredError,
    UnauthorizedError,
)
from db.team import Team, TeamMember
from db.users import User
from schemas.access import PlanRead, PlanStatus, RoleRead, TeamDetails, TrialStatus, UserContext

logger = logging.getLogger(__name__)


class Permission:
    VIEW = "inventory.view"
    CREATE = "inventory.create"
    UPDATE = "inventory.update"
    DELETE = "inventory.delete"


WILDCARD = "*"
ABOUT_TO_EXPIRE_DAYS = 7


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands timezone-aware columns back naive
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def get_current_user(db: AsyncSession, user: Optional[User]) -> Optional[UserContext]:
    """Build the access-gate view of an authenticated user, or None when there is no session."""
    if user is None:
        return None

    res = await db.execute(
        select(TeamMember)
        .where(TeamMember.user_id == user.id, TeamMember.active == True)  # noqa: E712
        .order_by(TeamMember.joined_at.asc())
        .limit(1)
        .execution_options(populate_existing=True)
    )
    member = res.scalar_one_or_none()

    ctx = UserContext(
        user_id=user.id,
        email=user.email,
        full_name=getattr(user, "full_name", None),
        language=getattr(user, "language", None),
        is_admin=bool(user.is_superuser),
    )
    if member is None:
        return ctx

    ctx.team_id = member.team_id
    ctx.joined_at = member.joined_at
    ctx.invited_by = member.invited_by
    ctx.active = bool(member.active)
    if member.role is not None:
        ctx.role = RoleRead(
            id=member.role.id,
            name=member.role.name,
            level=int(member.role.level or 0),
            permissions=member.role.permission_list,
        )
    return ctx


def team_details_from_model(team: Team, now: Optional[datetime] = None) -> TeamDetails:
    now = now or datetime.now(timezone.utc)
    plan = team.plan

    subscribed_at = _as_utc(team.subscribed_at)
    explicit_expire = _as_utc(team.expire_date)
    derived_expire = None
    if subscribed_at and plan is not None and (plan.duration_days or 0) > 0:
        derived_expire = subscribed_at + timedelta(days=int(plan.duration_days))
    expire_date = explicit_expire or derived_expire

    days_remaining_raw = None
    if expire_date is not None:
        days_remaining_raw = math.ceil((expire_date - now).total_seconds() / 86400)
    days_remaining = None if days_remaining_raw is None else max(0, days_remaining_raw)
    before_expiry = bool(expire_date and now < expire_date)
    expired = bool(expire_date and now > expire_date)
    about_to_expire = bool(
        before_expiry and days_remaining_raw is not None and days_remaining_raw <= ABOUT_TO_EXPIRE_DAYS
    )

    is_trial = bool(team.is_trial) or (plan is not None and (plan.name or "").lower() == "trial")

    plan_out = None
    if plan is not None:
        features = list(plan.features or [])
        plan_out = PlanRead(
            id=plan.id,
            name=plan.name,
            description=plan.description,
            feature_ids=[f.id for f in features],
            feature_keys=[f.key for f in features if f.active is not False],
            inactive_feature_keys=[f.key for f in features if f.active is False],
            duration_days=plan.duration_days,
        )

    return TeamDetails(
        id=team.id,
        name=team.name,
        logo_url=team.logo_url,
        created_by=team.created_by,
        subscribed_at=subscribed_at,
        expire_date=team.expire_date,
        active=bool(team.active),
        is_trial=team.is_trial,
        country=team.country,
        currency=team.currency,
        plan_id=team.plan_id,
        plan=plan_out,
        trial_status=TrialStatus(
            is_trial=is_trial,
            expired=is_trial and expired,
            expire_date=expire_date,
            about_to_expire=is_trial and about_to_expire,
            days_remaining=days_remaining if is_trial else None,
        ),
        plan_status=PlanStatus(
            expired=(not is_trial) and expired,
            expire_date=expire_date,
            about_to_expire=(not is_trial) and about_to_expire,
            days_remaining=days_remaining if not is_trial else None,
        ),
    )


async def get_team_details(db: AsyncSession, team_id: UUID) -> Optional[TeamDetails]:
    res = await db.execute(
        select(Team).where(Team.id == team_id).execution_options(populate_existing=True)
    )
    team = res.scalar_one_or_none()
    if team is None:
        return None
    return team_details_from_model(team)


def check_feature(team: Optional[TeamDetails], feature_key: str) -> bool:
    if team is None or team.plan is None:
        return False
    return feature_key in team.plan.feature_keys


def check_subscription(team: Optional[TeamDetails]) -> bool:
    if team is None:
        return False
    return not (team.trial_status.expired or team.plan_status.expired)


def check_permission(user: Optional[UserContext], permission: str) -> bool:
    if user is None:
        return False
    perms = user.permissions
    return WILDCARD in perms or permission in perms


async def assert_access(db: AsyncSession, user: Optional[UserContext], permission: str) -> UserContext:
    """Raise the first failing access check, otherwise return the user."""
    if user is None:
        raise UnauthorizedError()
    if user.team_id is None:
        raise NoTeamError()

    team = await get_team_details(db, user.team_id)

    feature_key = settings.inventory_feature_key
    if not check_feature(team, feature_key):
        logger.info("Access denied for user %s: feature %s not in plan", user.user_id, feature_key)
        raise FeatureNotAvailableError(feature_key)
    if not check_subscription(team):
        logger.info("Access denied for user %s: subscription of team %s expired", user.user_id, user.team_id)
        raise SubscriptionExpiredError(is_trial=team.trial_status.is_trial)
    if not check_permission(user, permission):
        logger.info("Access denied for user %s: missing %s", user.user_id, permission)
        raise PermissionDeniedError(permission)
    return user
