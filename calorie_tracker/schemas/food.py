"""Pydantic schemas for the food catalog, food logs and calorie summaries."""

from __future__ import annotations

import datetime as dt
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field, model_validator

from calorie_tracker.schemas.rewards import PointsAwarded


def _strip_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Must not be empty")
    return v


def _strip_optional(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip()
    return v or None


RequiredText = Annotated[str, AfterValidator(_strip_required)]
OptionalText = Annotated[str | None, AfterValidator(_strip_optional)]


# ── Food catalog ────────────────────────────────────────────────────
class FoodCreate(BaseModel):
    name: RequiredText = Field(max_length=100)
    calories_per_unit: int = Field(ge=0)
    default_unit: RequiredText = Field(max_length=20)
    category: OptionalText = Field(default=None, max_length=50)
    brand: OptionalText = Field(default=None, max_length=100)


class FoodUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=100)
    calories_per_unit: int | None = Field(default=None, ge=0)
    default_unit: str | None = Field(default=None, max_length=20)
    category: str | None = Field(default=None, max_length=50)
    brand: str | None = Field(default=None, max_length=100)


class FoodRead(BaseModel):
    id: int
    name: str
    calories_per_unit: int
    default_unit: str
    category: str | None
    brand: str | None
    created_by: int | None = None
    created_at: dt.datetime | None = None
    review_status: str | None = None

    model_config = {"from_attributes": True}


class FoodListResponse(BaseModel):
    success: bool = True
    foods: list[FoodRead]


class FoodSearchResponse(FoodListResponse):
    query: str


class FoodResponse(BaseModel):
    success: bool = True
    food: FoodRead


class FoodCreatedResponse(BaseModel):
    success: bool = True
    message: str
    food_id: int
    contributed_to_database: bool = False


# ── Food logs ───────────────────────────────────────────────────────
class FoodLogCreate(BaseModel):
    food_id: int | None = Field(default=None, ge=1)
    name: OptionalText = Field(default=None, max_length=100)
    quantity: float = Field(ge=0.1)
    unit: RequiredText = Field(max_length=20)
    calories: float = Field(ge=0)
    log_date: dt.date | None = None

    @model_validator(mode="after")
    def _food_or_name(self) -> "FoodLogCreate":
        if self.food_id is None and not self.name:
            raise ValueError("Either food_id or name must be provided")
        return self


class FoodLogRead(BaseModel):
    id: int
    food_id: int | None
    food_name: str
    quantity: float
    unit: str
    calories: float
    log_date: dt.date
    logged_at: dt.datetime | None
    external_food_id: str | None = None
    brand: str | None = None

    model_config = {"from_attributes": True}


class FoodLogListResponse(BaseModel):
    success: bool = True
    logs: list[FoodLogRead]
    total_calories: float
    date: dt.date


class FoodLogCreatedResponse(PointsAwarded):
    success: bool = True
    message: str
    log_id: int


# ── Summaries ───────────────────────────────────────────────────────
class DaySummary(BaseModel):
    date: dt.date
    meals_count: int
    total_calories: float


class DailySummary(DaySummary):
    daily_goal: int
    remaining_calories: float


class DailySummaryResponse(BaseModel):
    success: bool = True
    summary: DailySummary
    date: dt.date


class Period(BaseModel):
    start_date: dt.date
    end_date: dt.date


class WeeklySummaryResponse(BaseModel):
    success: bool = True
    period: Period
    weekly_data: list[DaySummary]


class UserStats(BaseModel):
    period: Period
    total_days: int
    total_calories: float
    total_meals: int
    average_calories_per_day: int
    average_meals_per_day: float
    daily_goal: int
    days_with_goal_met: int
    goal_achievement_rate: int
    daily_data: list[DaySummary]


class UserStatsResponse(BaseModel):
    success: bool = True
    stats: UserStats
