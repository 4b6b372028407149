from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from fuelflow.app.core.security import validate_password_strength
from fuelflow.app.models.user import RoleEnum


def validate_password(v: str) -> str:
    error = validate_password_strength(v)
    if error:
        raise ValueError(error)
    return v


class UserOut(BaseModel):
    id: UUID
    username: str
    full_name: str | None
    email: str | None
    role: RoleEnum
    station_id: UUID | None
    is_active: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=150)
    password: str = Field(..., min_length=8, max_length=128)
    role: RoleEnum
    station_id: UUID | None = None
    full_name: str | None = None
    email: str | None = None
    is_active: bool = True

    @field_validator("password")
    @classmethod
    def check_password_strength(cls, v: str) -> str:
        return validate_password(v)


class UserUpdate(BaseModel):
    username: str | None = Field(None, min_length=3, max_length=150)
    role: RoleEnum | None = None
    station_id: UUID | None = None
    full_name: str | None = None
    email: str | None = None
    is_active: bool | None = None


class ChangePasswordIn(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8, max_length=128)

    @field_validator("new_password")
    @classmethod
    def check_password_strength(cls, v: str) -> str:
        return validate_password(v)


class MessageOut(BaseModel):
    detail: str
