"""
Reward endpoints: point balance, ledger, daily login bonus, leaderboard,
achievements and logging milestones. All routes need a signed-in caller.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from calorie_tracker.api.v1.deps import get_current_user, get_db
from calorie_tracker.models.rewards import MILESTONE_FOOD, MILESTONE_WEIGHT, UserAchievement
from calorie_tracker.schemas.auth import CurrentUser
from calorie_tracker.schemas.rewards import (AchievementListResponse, AchievementRead,
                                             DailyRewardResponse, LeaderboardResponse,
                                             MilestoneProgressResponse, PointsSummaryResponse,
                                             PointTransactionRead, TransactionHistoryResponse,
                                             TransactionPage)
from calorie_tracker.services import points

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rewards", tags=["rewards"])


@router.get("/points", response_model=PointsSummaryResponse)
async def my_points(
    identity: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PointsSummaryResponse:
    return PointsSummaryResponse(points=await points.points_summary(db, identity.user_id))


@router.get("/transactions", response_model=TransactionHistoryResponse)
async def transactions(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    identity: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> TransactionHistoryResponse:
    """Ledger entries, newest first."""
    rows, total = await points.transaction_history(db, identity.user_id, limit, offset)
    return TransactionHistoryResponse(
        transactions=[PointTransactionRead.model_validate(r) for r in rows],
        pagination=TransactionPage(
            limit=limit, offset=offset, total=total, has_more=offset + len(rows) < total
        ),
    )


@router.post("/daily-reward", response_model=DailyRewardResponse)
async def claim_daily_reward(
    identity: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> DailyRewardResponse:
    today = datetime.now(timezone.utc).date()
    awarded = await points.claim_daily_reward(db, identity.user_id, today)
    if awarded is None:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Daily reward already claimed today",
        )
    await db.commit()
    logger.info("User %s claimed the daily reward", identity.username)
    return DailyRewardResponse(
        message=f"You earned {awarded} points for logging in today!",
        points_awarded=awarded,
    )


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(
    limit: int = Query(default=100, ge=1, le=500),
    identity: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> LeaderboardResponse:
    entries = await points.leaderboard(db, limit)
    mine = next((e for e in entries if e.user_id == identity.user_id), None)
    return LeaderboardResponse(leaderboard=entries, my_rank=mine)


@router.get("/achievements", response_model=AchievementListResponse)
async def achievements(
    identity: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> AchievementListResponse:
    result = await db.execute(
        select(UserAchievement)
        .where(UserAchievement.user_id == identity.user_id)
        .order_by(UserAchievement.earned_at.desc(), UserAchievement.id.desc())
    )
    return AchievementListResponse(
        achievements=[AchievementRead.model_validate(a) for a in result.scalars().all()]
    )


@router.get("/food-milestones", response_model=MilestoneProgressResponse)
async def food_milestones(
    identity: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MilestoneProgressResponse:
    return MilestoneProgressResponse(
        milestones=await points.milestone_overview(db, identity.user_id, MILESTONE_FOOD)
    )


@router.get("/weight-milestones", response_model=MilestoneProgressResponse)
async def weight_milestones(
    identity: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MilestoneProgressResponse:
    return MilestoneProgressResponse(
        milestones=await points.milestone_overview(db, identity.user_id, MILESTONE_WEIGHT)
    )
