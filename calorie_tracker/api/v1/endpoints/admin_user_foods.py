"""
Review queue for catalog entries contributed by users.

New contributions start out pending. An admin promotes them into the
verified catalog, rejects them (hidden from public browse and search),
or deletes them while nobody has logged them yet.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from calorie_tracker.api.v1.deps import get_db, require_admin
from calorie_tracker.models.food import FOOD_PENDING, FOOD_REJECTED, FOOD_VERIFIED, Food, FoodLog
from calorie_tracker.models.user import User
from calorie_tracker.schemas.admin import (FoodPromotion, FoodRejection, Pagination,
                                           TopContributor, UserFoodListResponse, UserFoodRead,
                                           UserFoodStats, UserFoodStatsResponse)
from calorie_tracker.schemas.common import MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/user-foods", tags=["admin"])

TOP_CONTRIBUTORS = 10
DEFAULT_REJECTION = "Rejected by admin"


def _usage_by_food():
    return (
        select(
            FoodLog.food_id.label("food_id"),
            func.count(FoodLog.id).label("times_logged"),
            func.count(func.distinct(FoodLog.user_id)).label("unique_users"),
            func.max(FoodLog.logged_at).label("last_used_at"),
        )
        .where(FoodLog.food_id.is_not(None))
        .group_by(FoodLog.food_id)
        .subquery()
    )


async def _get_pending_or_404(db: AsyncSession, food_id: int, detail: str) -> Food:
    food = await db.get(Food, food_id)
    if food is None or food.review_status != FOOD_PENDING:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
    return food


@router.get("", response_model=UserFoodListResponse)
async def list_user_foods(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=100),
    sort_by: Literal["popularity", "recent", "alphabetical"] = "popularity",
    min_usage: int = Query(default=0, ge=0),
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> UserFoodListResponse:
    """Pending contributions with how often, and by how many users, each was logged."""
    usage = _usage_by_food()
    times_logged = func.coalesce(usage.c.times_logged, 0)
    criteria = (Food.review_status == FOOD_PENDING, times_logged >= min_usage)

    total = (
        await db.execute(
            select(func.count(Food.id))
            .outerjoin(usage, usage.c.food_id == Food.id)
            .where(*criteria)
        )
    ).scalar_one()

    order = {
        "popularity": (times_logged.desc(), Food.created_at.desc(), Food.id.desc()),
        "recent": (Food.created_at.desc(), Food.id.desc()),
        "alphabetical": (Food.name.asc(),),
    }[sort_by]
    result = await db.execute(
        select(
            Food,
            User.username,
            times_logged,
            func.coalesce(usage.c.unique_users, 0),
            usage.c.last_used_at,
        )
        .outerjoin(usage, usage.c.food_id == Food.id)
        .outerjoin(User, User.id == Food.created_by)
        .where(*criteria)
        .order_by(*order)
        .limit(limit)
        .offset((page - 1) * limit)
    )

    foods = []
    for food, username, logged, users, last_used in result.all():
        item = UserFoodRead.model_validate(food)
        item.creator_username = username
        item.times_logged = logged
        item.unique_users = users
        item.last_used_at = last_used
        foods.append(item)
    return UserFoodListResponse(
        foods=foods,
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if total else 0,
        ),
    )


@router.get("/stats", response_model=UserFoodStatsResponse)
async def user_food_stats(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> UserFoodStatsResponse:
    usage = _usage_by_food()
    total_usage = func.coalesce(func.sum(usage.c.times_logged), 0)

    row = (
        await db.execute(
            select(
                func.count(Food.id),
                func.count(func.distinct(Food.created_by)),
                total_usage,
            )
            .outerjoin(usage, usage.c.food_id == Food.id)
            .where(Food.review_status == FOOD_PENDING)
        )
    ).one()
    foods, contributors, logs = row[0], row[1], int(row[2] or 0)

    foods_contributed = func.count(Food.id).label("foods_contributed")
    usage_total = total_usage.label("total_usage")
    top = await db.execute(
        select(User.id, User.username, foods_contributed, usage_total)
        .join(Food, Food.created_by == User.id)
        .outerjoin(usage, usage.c.food_id == Food.id)
        .where(Food.review_status == FOOD_PENDING)
        .group_by(User.id, User.username)
        .order_by(usage_total.desc(), foods_contributed.desc(), User.id.asc())
        .limit(TOP_CONTRIBUTORS)
    )
    return UserFoodStatsResponse(
        stats=UserFoodStats(
            total_user_foods=foods,
            total_contributors=contributors,
            total_logs_of_user_foods=logs,
            avg_usage_per_food=round(logs / foods, 1) if foods else 0.0,
        ),
        top_contributors=[
            TopContributor(
                id=r.id,
                username=r.username,
                foods_contributed=r.foods_contributed,
                total_usage=int(r.total_usage or 0),
            )
            for r in top.all()
        ],
    )


@router.post("/{food_id}/promote", response_model=MessageResponse)
async def promote_food(
    food_id: int,
    body: FoodPromotion,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    food = await _get_pending_or_404(db, food_id, "Food not found or not eligible for promotion")
    food.review_status = FOOD_VERIFIED
    food.reviewed_by = admin.id
    food.reviewed_at = datetime.now(timezone.utc)
    food.review_notes = body.notes
    await db.commit()
    logger.info("Admin %s promoted food %d to the verified catalog", admin.username, food_id)
    return MessageResponse(message="Food promoted to the verified catalog")


@router.post("/{food_id}/reject", response_model=MessageResponse)
async def reject_food(
    food_id: int,
    body: FoodRejection,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    food = await _get_pending_or_404(db, food_id, "Food not found or not eligible for review")
    food.review_status = FOOD_REJECTED
    food.reviewed_by = admin.id
    food.reviewed_at = datetime.now(timezone.utc)
    food.review_notes = body.reason or DEFAULT_REJECTION
    await db.commit()
    logger.info("Admin %s rejected food %d", admin.username, food_id)
    return MessageResponse(message="Food rejected")


@router.delete("/{food_id}", response_model=MessageResponse)
async def delete_user_food(
    food_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    food = await _get_pending_or_404(db, food_id, "Food not found")
    used = (
        await db.execute(select(func.count(FoodLog.id)).where(FoodLog.food_id == food.id))
    ).scalar_one()
    if used:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete food that is being used in logs. Consider rejecting it instead.",
        )
    await db.execute(delete(Food).where(Food.id == food.id))
    await db.commit()
    logger.info("Admin %s deleted contributed food %d", admin.username, food_id)
    return MessageResponse(message="Food deleted successfully")
