"""Pydantic schemas for User registration, profile and admin management."""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from calorie_tracker.models.user import ROLE_ADMIN, ROLE_USER

_VALID_ROLES = {ROLE_USER, ROLE_ADMIN}
_USERNAME_RE = re.compile(r"^[A-Za-z0-9_.-]{3,50}$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MIN_CALORIE_GOAL = 1000
MAX_CALORIE_GOAL = 5000
PASSWORD_MIN_LEN = 6
PASSWORD_MAX_LEN = 128


def _normalise_email(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip().lower()
    if not _EMAIL_RE.match(v):
        raise ValueError("Invalid email format")
    return v


class UserCreate(BaseModel):
    username: str
    password: str = Field(min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
    email: str | None = None
    daily_calorie_goal: int = Field(default=2000, ge=MIN_CALORIE_GOAL, le=MAX_CALORIE_GOAL)

    @field_validator("username")
    @classmethod
    def _username(cls, v: str) -> str:
        v = v.strip()
        if not _USERNAME_RE.match(v):
            raise ValueError(
                "Username must be 3-50 characters (letters, digits, . _ - allowed)"
            )
        return v

    @field_validator("email")
    @classmethod
    def _email(cls, v: str | None) -> str | None:
        return _normalise_email(v)


class UserSummary(BaseModel):
    id: int
    username: str
    daily_calorie_goal: int


class UserProfile(BaseModel):
    id: int
    username: str
    email: str | None
    daily_calorie_goal: int
    role: str
    created_at: datetime | None

    model_config = {"from_attributes": True}


class ProfileResponse(BaseModel):
    success: bool = True
    user: UserProfile


class ProfileUpdate(BaseModel):
    email: str | None = None
    daily_calorie_goal: int | None = Field(default=None, ge=MIN_CALORIE_GOAL, le=MAX_CALORIE_GOAL)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str | None) -> str | None:
        return _normalise_email(v)


class UserAdminUpdate(BaseModel):
    role: str | None = None
    is_active: bool | None = None
    daily_calorie_goal: int | None = Field(default=None, ge=MIN_CALORIE_GOAL, le=MAX_CALORIE_GOAL)

    @field_validator("role")
    @classmethod
    def _validate_role(cls, v: str | None) -> str | None:
        if v is not None and v not in _VALID_ROLES:
            raise ValueError(f"Role must be one of: {sorted(_VALID_ROLES)}")
        return v


class PasswordReset(BaseModel):
    new_password: str = Field(min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
