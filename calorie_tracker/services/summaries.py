"""
Calorie summaries derived from food logs.

Each summary is one aggregate query; the goal-achievement maths runs in
Python over the per-day rows.
"""

from __future__ import annotations

from datetime import date, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from calorie_tracker.models.food import FoodLog
from calorie_tracker.schemas.food import DaySummary, Period, UserStats

# A day "meets" the goal when it lands within ±10 % of it.
GOAL_TOLERANCE = 0.10
STATS_PERIOD_DAYS = 30


async def daily_totals(db: AsyncSession, user_id: int, day: date) -> DaySummary:
    result = await db.execute(
        select(
            func.count(FoodLog.id).label("meals_count"),
            func.coalesce(func.sum(FoodLog.calories), 0).label("total_calories"),
        ).where(FoodLog.user_id == user_id, FoodLog.log_date == day)
    )
    row = result.one()
    return DaySummary(
        date=day,
        meals_count=row.meals_count or 0,
        total_calories=float(row.total_calories or 0),
    )


async def range_totals(
    db: AsyncSession, user_id: int, start: date, end: date
) -> list[DaySummary]:
    """Per-day totals for days with at least one log, newest first."""
    result = await db.execute(
        select(
            FoodLog.log_date,
            func.count(FoodLog.id).label("meals_count"),
            func.sum(FoodLog.calories).label("total_calories"),
        )
        .where(
            FoodLog.user_id == user_id,
            FoodLog.log_date >= start,
            FoodLog.log_date <= end,
        )
        .group_by(FoodLog.log_date)
        .order_by(FoodLog.log_date.desc())
    )
    return [
        DaySummary(
            date=r.log_date,
            meals_count=r.meals_count,
            total_calories=float(r.total_calories or 0),
        )
        for r in result.all()
    ]


def goal_met(total_calories: float, goal: int) -> bool:
    return goal * (1 - GOAL_TOLERANCE) <= total_calories <= goal * (1 + GOAL_TOLERANCE)


def compute_stats(days: list[DaySummary], goal: int, start: date, end: date) -> UserStats:
    total_days = len(days)
    total_calories = sum(d.total_calories for d in days)
    total_meals = sum(d.meals_count for d in days)
    days_met = sum(1 for d in days if goal_met(d.total_calories, goal))
    return UserStats(
        period=Period(start_date=start, end_date=end),
        total_days=total_days,
        total_calories=round(total_calories, 2),
        total_meals=total_meals,
        average_calories_per_day=round(total_calories / total_days) if total_days else 0,
        average_meals_per_day=round(total_meals / total_days, 1) if total_days else 0.0,
        daily_goal=goal,
        days_with_goal_met=days_met,
        goal_achievement_rate=round(days_met / total_days * 100) if total_days else 0,
        daily_data=days,
    )


async def user_stats(db: AsyncSession, user_id: int, goal: int, today: date) -> UserStats:
    start = today - timedelta(days=STATS_PERIOD_DAYS - 1)
    days = await range_totals(db, user_id, start, today)
    return compute_stats(days, goal, start, today)
