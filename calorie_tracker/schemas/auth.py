"""Pydantic schemas for login, tokens and the resolved request identity."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from calorie_tracker.schemas.user import UserSummary


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1, max_length=128)


class LoginResponse(BaseModel):
    success: bool = True
    token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserSummary


class VerifyResponse(BaseModel):
    valid: bool = True
    user: UserSummary


class CurrentUser(BaseModel):
    """Identity attached to a request once its bearer token resolves to a live session."""

    user_id: int
    username: str
    daily_calorie_goal: int
    session_id: str

    def summary(self) -> UserSummary:
        return UserSummary(
            id=self.user_id,
            username=self.username,
            daily_calorie_goal=self.daily_calorie_goal,
        )
