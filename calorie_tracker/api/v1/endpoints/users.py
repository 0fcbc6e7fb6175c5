"""
Current-user endpoints: profile and 30-day statistics.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from calorie_tracker.api.v1.deps import get_current_user, get_db
from calorie_tracker.core.exceptions import AuthenticationRequired
from calorie_tracker.schemas.auth import CurrentUser
from calorie_tracker.schemas.common import MessageResponse
from calorie_tracker.schemas.food import UserStatsResponse
from calorie_tracker.schemas.user import ProfileResponse, ProfileUpdate, UserProfile
from calorie_tracker.services.summaries import user_stats
from calorie_tracker.services.users import get_active_user_by_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user", tags=["user"])


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    identity: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ProfileResponse:
    user = await get_active_user_by_id(db, identity.user_id)
    if user is None:
        raise AuthenticationRequired()
    return ProfileResponse(user=UserProfile.model_validate(user))


@router.put("/profile", response_model=MessageResponse)
async def update_profile(
    body: ProfileUpdate,
    identity: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
    if changes.get("daily_calorie_goal", 0) is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="daily_calorie_goal cannot be null",
        )

    user = await get_active_user_by_id(db, identity.user_id)
    if user is None:
        raise AuthenticationRequired()
    for field, value in changes.items():
        setattr(user, field, value)
    await db.commit()

    logger.info("User %s updated profile fields: %s", identity.username, ", ".join(sorted(changes)))
    return MessageResponse(message="Profile updated successfully")


@router.get("/stats", response_model=UserStatsResponse)
async def get_stats(
    identity: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserStatsResponse:
    today = datetime.now(timezone.utc).date()
    stats = await user_stats(db, identity.user_id, identity.daily_calorie_goal, today)
    return UserStatsResponse(stats=stats)
