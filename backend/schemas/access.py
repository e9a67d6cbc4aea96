from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel


class RoleRead(BaseModel):
    id: UUID
    name: str
    level: int
    permissions: List[str]


class UserContext(BaseModel):
    """The authenticated user as seen by the access gate."""

    user_id: UUID
    email: str
    full_name: Optional[str] = None
    language: Optional[str] = None
    team_id: Optional[UUID] = None
    joined_at: Optional[datetime] = None
    invited_by: Optional[UUID] = None
    active: bool = False
    is_admin: bool = False
    role: Optional[RoleRead] = None

    @property
    def permissions(self) -> List[str]:
        return list(self.role.permissions) if self.role else []


class PlanRead(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    feature_ids: List[UUID]
    feature_keys: List[str]
    inactive_feature_keys: List[str]
    duration_days: Optional[int] = None


class TrialStatus(BaseModel):
    is_trial: bool
    expired: bool
    expire_date: Optional[datetime] = None
    about_to_expire: bool
    days_remaining: Optional[int] = None


class PlanStatus(BaseModel):
    expired: bool
    expire_date: Optional[datetime] = None
    about_to_expire: bool
    days_remaining: Optional[int] = None


class TeamDetails(BaseModel):
    id: UUID
    name: str
    logo_url: Optional[str] = None
    created_by: Optional[UUID] = None
    subscribed_at: Optional[datetime] = None
    expire_date: Optional[datetime] = None
    active: bool
    is_trial: Optional[bool] = None
    country: Optional[str] = None
    currency: Optional[str] = None
    plan_id: Optional[UUID] = None
    plan: Optional[PlanRead] = None
    trial_status: TrialStatus
    plan_status: PlanStatus
