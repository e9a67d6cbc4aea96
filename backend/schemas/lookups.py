from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


def _strip_required(v: str) -> str:
    v = (v or "").strip()
    if not v:
        raise ValueError("field is required")
    return v


def _strip_nullable(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


class CategoryRead(BaseModel):
    id: UUID
    team_id: UUID
    name: str
    name_ar: Optional[str] = None
    sort_order: int
    archived: bool


class CategoryCreate(BaseModel):
    name: str = Field(..., max_length=100)
    name_ar: Optional[str] = Field(None, max_length=100)
    sort_order: Optional[int] = Field(None, ge=0)

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator("name_ar")
    @classmethod
    def _name_ar(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    name_ar: Optional[str] = Field(None, max_length=100)
    sort_order: Optional[int] = Field(None, ge=0)

    @field_validator("name")
    @classmethod
    def _name(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _strip_required(v)

    @field_validator("name_ar")
    @classmethod
    def _name_ar(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)


class UnitRead(BaseModel):
    id: UUID
    team_id: UUID
    name: str
    name_ar: Optional[str] = None
    abbreviation: str
    abbreviation_ar: Optional[str] = None
    sort_order: int
    archived: bool


class UnitCreate(BaseModel):
    name: str = Field(..., max_length=50)
    name_ar: Optional[str] = Field(None, max_length=50)
    abbreviation: str = Field(..., max_length=10)
    abbreviation_ar: Optional[str] = Field(None, max_length=10)
    sort_order: Optional[int] = Field(None, ge=0)

    @field_validator("name", "abbreviation")
    @classmethod
    def _required(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator("name_ar", "abbreviation_ar")
    @classmethod
    def _nullable(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)


class UnitUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=50)
    name_ar: Optional[str] = Field(None, max_length=50)
    abbreviation: Optional[str] = Field(None, max_length=10)
    abbreviation_ar: Optional[str] = Field(None, max_length=10)
    sort_order: Optional[int] = Field(None, ge=0)

    @field_validator("name", "abbreviation")
    @classmethod
    def _required_if_set(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _strip_required(v)

    @field_validator("name_ar", "abbreviation_ar")
    @classmethod
    def _nullable(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)
