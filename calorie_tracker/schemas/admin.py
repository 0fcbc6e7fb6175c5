"""Pydantic schemas for admin-only endpoints (users, stats, cache, db browser)."""

from __future__ import annotations

import datetime as dt
from typing import Any

from pydantic import BaseModel, Field

from calorie_tracker.schemas.food import FoodLogRead, FoodRead


# ── Users ───────────────────────────────────────────────────────────
class AdminUserRead(BaseModel):
    id: int
    username: str
    email: str | None
    role: str
    daily_calorie_goal: int
    is_active: bool
    created_at: dt.datetime | None
    total_logs: int = 0
    total_calories: float = 0.0


class AdminUserListResponse(BaseModel):
    success: bool = True
    users: list[AdminUserRead]


class AdminUserDetail(AdminUserRead):
    active_sessions: int
    last_activity: dt.datetime | None


class AdminUserDetailResponse(BaseModel):
    success: bool = True
    user: AdminUserDetail
    food_logs: list[FoodLogRead]


# ── Foods ───────────────────────────────────────────────────────────
class AdminFoodRead(FoodRead):
    usage_count: int = 0
    total_quantity_logged: float = 0.0


class AdminFoodListResponse(BaseModel):
    success: bool = True
    foods: list[AdminFoodRead]


class FoodCategory(BaseModel):
    category: str
    food_count: int


class FoodCategoryListResponse(BaseModel):
    success: bool = True
    categories: list[FoodCategory]


# ── Stats ───────────────────────────────────────────────────────────
class SystemStats(BaseModel):
    total_users: int
    total_admins: int
    total_foods: int
    total_logs: int
    active_sessions: int
    avg_calorie_goal: float | None


class ActivityItem(BaseModel):
    activity_type: str
    description: str
    activity_time: dt.datetime


class SystemStatsResponse(BaseModel):
    success: bool = True
    stats: SystemStats
    recent_activity: list[ActivityItem]


# ── Cache ───────────────────────────────────────────────────────────
class CacheCleanupResult(BaseModel):
    enabled: bool
    old_unused_removed: int = 0
    very_old_removed: int = 0
    excess_removed: int = 0


class CacheCleanupResponse(BaseModel):
    success: bool = True
    result: CacheCleanupResult


class CacheStatusResponse(BaseModel):
    success: bool = True
    cleanup_enabled: bool
    cache_stats: dict[str, Any]


# ── Database browser ────────────────────────────────────────────────
class TableInfo(BaseModel):
    table_name: str
    row_count: int


class TableListResponse(BaseModel):
    success: bool = True
    tables: list[TableInfo]


class ColumnInfo(BaseModel):
    column_name: str
    data_type: str
    is_nullable: bool
    default_value: str | None
    primary_key: bool


class TableStructureResponse(BaseModel):
    success: bool = True
    table: str
    columns: list[ColumnInfo]


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class TableDataResponse(BaseModel):
    success: bool = True
    table: str
    data: list[dict[str, Any]]
    pagination: Pagination


class DatabaseStats(BaseModel):
    table_count: int
    total_rows: int
    database_name: str | None
    dialect: str
    server_version: str | None


class DatabaseStatsResponse(BaseModel):
    success: bool = True
    stats: DatabaseStats


# ── User-contributed foods ──────────────────────────────────────────
class UserFoodRead(FoodRead):
    creator_username: str | None = None
    times_logged: int = 0
    unique_users: int = 0
    last_used_at: dt.datetime | None = None


class UserFoodListResponse(BaseModel):
    success: bool = True
    foods: list[UserFoodRead]
    pagination: Pagination


class UserFoodStats(BaseModel):
    total_user_foods: int
    total_contributors: int
    total_logs_of_user_foods: int
    avg_usage_per_food: float


class TopContributor(BaseModel):
    id: int
    username: str
    foods_contributed: int
    total_usage: int


class UserFoodStatsResponse(BaseModel):
    success: bool = True
    stats: UserFoodStats
    top_contributors: list[TopContributor]


class FoodPromotion(BaseModel):
    notes: str | None = Field(default=None, max_length=500)


class FoodRejection(BaseModel):
    reason: str | None = Field(default=None, max_length=500)
