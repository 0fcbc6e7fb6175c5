"""Pydantic schemas for points, milestones, achievements and the leaderboard."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field


class PointsDetail(BaseModel):
    """One line of a reward breakdown returned with a new log entry."""

    reason: str
    points: int
    base_points: int | None = None
    multiplier: float | None = None
    new_level: int | None = None


class PointsAwarded(BaseModel):
    points_awarded: int = 0
    points_details: list[PointsDetail] = Field(default_factory=list)


class MilestoneRead(BaseModel):
    level: int
    multiplier: float
    current_count: int


class PointsSummary(BaseModel):
    current_points: int
    lifetime_points: int
    points_spent: int
    level: int
    next_level_at: int | None
    achievements_count: int
    last_daily_reward_date: dt.date | None
    food_milestone: MilestoneRead
    weight_milestone: MilestoneRead


class PointsSummaryResponse(BaseModel):
    success: bool = True
    points: PointsSummary


class PointTransactionRead(BaseModel):
    id: int
    points: int
    transaction_type: str
    reason: str
    description: str | None
    reference_type: str | None
    reference_id: int | None
    created_at: dt.datetime | None

    model_config = {"from_attributes": True}


class TransactionPage(BaseModel):
    limit: int
    offset: int
    total: int
    has_more: bool


class TransactionHistoryResponse(BaseModel):
    success: bool = True
    transactions: list[PointTransactionRead]
    pagination: TransactionPage


class DailyRewardResponse(BaseModel):
    success: bool = True
    message: str
    points_awarded: int


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    username: str
    level: int
    lifetime_points: int
    current_points: int


class LeaderboardResponse(BaseModel):
    success: bool = True
    leaderboard: list[LeaderboardEntry]
    my_rank: LeaderboardEntry | None


class AchievementRead(BaseModel):
    code: str
    name: str
    description: str | None
    points_awarded: int
    earned_at: dt.datetime | None

    model_config = {"from_attributes": True}


class AchievementListResponse(BaseModel):
    success: bool = True
    achievements: list[AchievementRead]


class MilestoneProgress(BaseModel):
    total_logs: int
    current_level: int
    current_multiplier: float
    next_level: int | None
    next_multiplier: float | None
    logs_until_next_level: int | None


class MilestoneProgressResponse(BaseModel):
    success: bool = True
    milestones: MilestoneProgress
