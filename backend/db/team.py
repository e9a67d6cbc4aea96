"""
Tenancy tables: teams, their subscription plan and the roles of members.

A user belongs to at most one active team through ``TeamMember``; the role on
that membership carries the permission keys checked by the access gate, and
the team's plan carries the feature keys.
"""

import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Table, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


plan_features = Table(
    "plan_features",
    Base.metadata,
    Column("plan_id", Uuid, ForeignKey("plans.id", ondelete="CASCADE"), primary_key=True),
    Column("feature_id", Uuid, ForeignKey("features.id", ondelete="CASCADE"), primary_key=True),
)


class Feature(Base):
    __tablename__ = "features"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    key = Column(String(100), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    active = Column(Boolean, nullable=False, default=True)

    plans = relationship("Plan", secondary=plan_features, back_populates="features")


class Plan(Base):
    __tablename__ = "plans"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    member_limit = Column(Integer, nullable=False, default=1)
    duration_days = Column(Integer, nullable=True)
    active = Column(Boolean, nullable=False, default=True)

    features = relationship("Feature", secondary=plan_features, back_populates="plans", lazy="selectin")


class Team(Base):
    __tablename__ = "teams"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    logo_url = Column(String, nullable=True)
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    subscribed_at = Column(DateTime(timezone=True), nullable=True)
    expire_date = Column(DateTime(timezone=True), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    is_trial = Column(Boolean, nullable=True)
    country = Column(String(2), nullable=True)
    currency = Column(String(3), nullable=True)
    plan_id = Column(Uuid, ForeignKey("plans.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    plan = relationship("Plan", lazy="selectin")
    members = relationship("TeamMember", back_populates="team", cascade="all, delete-orphan")


class Role(Base):
    __tablename__ = "roles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True)
    level = Column(Integer, nullable=False, default=0)
    # e.g. ["inventory.view", "inventory.update"]; "*" grants everything
    permissions = Column(JSON, nullable=False, default=list)

    @property
    def permission_list(self) -> list[str]:
        return [str(p) for p in (self.permissions or [])]


class TeamMember(Base):
    __tablename__ = "team_members"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    team_id = Column(Uuid, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role_id = Column(Uuid, ForeignKey("roles.id", ondelete="SET NULL"), nullable=True)
    invited_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    joined_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    active = Column(Boolean, nullable=False, default=True)

    team = relationship("Team", back_populates="members")
    user = relationship("User", back_populates="memberships", foreign_keys=[user_id])
    role = relationship("Role", lazy="selectin")
