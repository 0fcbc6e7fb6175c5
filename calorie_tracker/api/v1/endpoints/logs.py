"""
Food log endpoints: per-user diary entries and calorie summaries.
"""

import logging
from datetime import date, datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from calorie_tracker.api.v1.deps import get_current_user, get_db
from calorie_tracker.models.food import Food, FoodLog
from calorie_tracker.models.rewards import MILESTONE_FOOD
from calorie_tracker.schemas.auth import CurrentUser
from calorie_tracker.schemas.common import MessageResponse
from calorie_tracker.schemas.food import (DailySummary, DailySummaryResponse, FoodLogCreate,
                                          FoodLogCreatedResponse, FoodLogListResponse,
                                          FoodLogRead, Period, WeeklySummaryResponse)
from calorie_tracker.services.points import settle_log_reward
from calorie_tracker.services.summaries import daily_totals, range_totals

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/logs", tags=["logs"])

WEEK_DAYS = 7


def _today() -> date:
    return datetime.now(timezone.utc).date()


@router.get("", response_model=FoodLogListResponse)
async def list_logs(
    day: date | None = Query(default=None, alias="date"),
    identity: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> FoodLogListResponse:
    day = day or _today()
    result = await db.execute(
        select(FoodLog)
        .where(FoodLog.user_id == identity.user_id, FoodLog.log_date == day)
        .order_by(FoodLog.logged_at.desc(), FoodLog.id.desc())
    )
    logs = [FoodLogRead.model_validate(row) for row in result.scalars().all()]
    return FoodLogListResponse(
        logs=logs,
        total_calories=round(sum(log.calories for log in logs), 2),
        date=day,
    )


@router.post("", response_model=FoodLogCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_log(
    body: FoodLogCreate,
    identity: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> FoodLogCreatedResponse:
    """Log a catalog food by id, or a free-text name (linked to the catalog when it matches)."""
    today = _today()
    food_id = body.food_id
    food_name = body.name
    if food_id is not None:
        food = await db.get(Food, food_id)
        if food is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Food not found")
        food_name = food.name
    else:
        match = await db.execute(select(Food.id).where(Food.name == body.name).limit(1))
        food_id = match.scalar_one_or_none()

    entry = FoodLog(
        user_id=identity.user_id,
        food_id=food_id,
        food_name=food_name,
        quantity=body.quantity,
        unit=body.unit,
        calories=body.calories,
        log_date=body.log_date or today,
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)

    awarded = await settle_log_reward(
        db, identity.user_id, MILESTONE_FOOD, entry.id, entry.log_date, today
    )
    return FoodLogCreatedResponse(
        message="Food log entry created", log_id=entry.id, **awarded.model_dump()
    )


@router.get("/summary", response_model=DailySummaryResponse)
async def daily_summary(
    day: date | None = Query(default=None, alias="date"),
    identity: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> DailySummaryResponse:
    day = day or _today()
    totals = await daily_totals(db, identity.user_id, day)
    goal = identity.daily_calorie_goal
    return DailySummaryResponse(
        summary=DailySummary(
            **totals.model_dump(),
            daily_goal=goal,
            remaining_calories=round(goal - totals.total_calories, 2),
        ),
        date=day,
    )


@router.get("/weekly", response_model=WeeklySummaryResponse)
async def weekly_summary(
    start_date: date | None = None,
    end_date: date | None = None,
    identity: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> WeeklySummaryResponse:
    end = end_date or _today()
    start = start_date or end - timedelta(days=WEEK_DAYS - 1)
    if start > end:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start_date must not be after end_date",
        )
    days = await range_totals(db, identity.user_id, start, end)
    return WeeklySummaryResponse(period=Period(start_date=start, end_date=end), weekly_data=days)


@router.delete("/{log_id}", response_model=MessageResponse)
async def delete_log(
    log_id: int,
    identity: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    result = await db.execute(
        delete(FoodLog).where(FoodLog.id == log_id, FoodLog.user_id == identity.user_id)
    )
    await db.commit()
    if not result.rowcount:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Food log entry not found")
    return MessageResponse(message="Food log entry deleted")
