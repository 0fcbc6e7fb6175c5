"""
Admin endpoints: user management, catalog maintenance, system stats and
the external food cache.  Every route sits behind the role gate.
"""

import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from calorie_tracker.api.v1.deps import get_db, require_admin
from calorie_tracker.core.config import settings
from calorie_tracker.core.security import get_password_hash
from calorie_tracker.models.food import FOOD_REJECTED, Food, FoodLog
from calorie_tracker.models.session import AuthSession
from calorie_tracker.models.user import ROLE_ADMIN, User
from calorie_tracker.schemas.admin import (ActivityItem, AdminFoodListResponse, AdminFoodRead,
                                           AdminUserDetail, AdminUserDetailResponse,
                                           AdminUserListResponse, AdminUserRead,
                                           CacheCleanupResponse, CacheStatusResponse,
                                           FoodCategory, FoodCategoryListResponse,
                                           SystemStats, SystemStatsResponse)
from calorie_tracker.schemas.common import CreatedResponse, MessageResponse
from calorie_tracker.schemas.food import FoodCreate, FoodLogRead, FoodUpdate
from calorie_tracker.schemas.user import PasswordReset, UserAdminUpdate
from calorie_tracker.services.cache_cleanup import run_cache_cleanup
from calorie_tracker.services.external_foods import cache_statistics

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

USER_DETAIL_LOG_LIMIT = 50
RECENT_ACTIVITY_DAYS = 7
RECENT_ACTIVITY_LIMIT = 20


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


async def _get_food_or_404(db: AsyncSession, food_id: int) -> Food:
    food = await db.get(Food, food_id)
    if food is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Food not found")
    return food


async def _ensure_food_name_free(db: AsyncSession, name: str, exclude_id: int | None = None) -> None:
    stmt = select(Food.id).where(Food.name == name)
    if exclude_id is not None:
        stmt = stmt.where(Food.id != exclude_id)
    if (await db.execute(stmt)).first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Food with this name already exists",
        )


# ── Users ───────────────────────────────────────────────────────────
@router.get("/users", response_model=AdminUserListResponse)
async def list_users(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> AdminUserListResponse:
    log_totals = (
        select(
            FoodLog.user_id.label("user_id"),
            func.count(FoodLog.id).label("total_logs"),
            func.sum(FoodLog.calories).label("total_calories"),
        )
        .group_by(FoodLog.user_id)
        .subquery()
    )
    result = await db.execute(
        select(User, log_totals.c.total_logs, log_totals.c.total_calories)
        .outerjoin(log_totals, log_totals.c.user_id == User.id)
        .order_by(User.created_at.desc(), User.id.desc())
    )
    users = [
        AdminUserRead(
            id=user.id,
            username=user.username,
            email=user.email,
            role=user.role,
            daily_calorie_goal=user.daily_calorie_goal,
            is_active=user.is_active,
            created_at=user.created_at,
            total_logs=total_logs or 0,
            total_calories=float(total_calories or 0),
        )
        for user, total_logs, total_calories in result.all()
    ]
    return AdminUserListResponse(users=users)


@router.get("/users/{user_id}", response_model=AdminUserDetailResponse)
async def get_user_detail(
    user_id: int,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> AdminUserDetailResponse:
    user = await _get_user_or_404(db, user_id)
    now = datetime.now(timezone.utc)

    totals = (
        await db.execute(
            select(
                func.count(FoodLog.id),
                func.coalesce(func.sum(FoodLog.calories), 0),
                func.max(FoodLog.logged_at),
            ).where(FoodLog.user_id == user_id)
        )
    ).one()
    active_sessions = (
        await db.execute(
            select(func.count(AuthSession.id)).where(
                AuthSession.user_id == user_id,
                AuthSession.is_active.is_(True),
                AuthSession.expires_at > now,
            )
        )
    ).scalar_one()
    logs = (
        await db.execute(
            select(FoodLog)
            .where(FoodLog.user_id == user_id)
            .order_by(FoodLog.logged_at.desc(), FoodLog.id.desc())
            .limit(USER_DETAIL_LOG_LIMIT)
        )
    ).scalars().all()

    detail = AdminUserDetail(
        id=user.id,
        username=user.username,
        email=user.email,
        role=user.role,
        daily_calorie_goal=user.daily_calorie_goal,
        is_active=user.is_active,
        created_at=user.created_at,
        total_logs=totals[0],
        total_calories=float(totals[1] or 0),
        active_sessions=active_sessions,
        last_activity=totals[2],
    )
    return AdminUserDetailResponse(
        user=detail,
        food_logs=[FoodLogRead.model_validate(log) for log in logs],
    )


@router.patch("/users/{user_id}", response_model=MessageResponse)
async def update_user(
    user_id: int,
    body: UserAdminUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Change role, active flag or goal. Deactivating a user ends all of their sessions."""
    changes = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    user = await _get_user_or_404(db, user_id)
    if user.id == admin.id and (
        changes.get("is_active") is False or changes.get("role", ROLE_ADMIN) != ROLE_ADMIN
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Admins cannot deactivate or demote themselves",
        )

    for field, value in changes.items():
        setattr(user, field, value)
    await db.commit()

    logger.info(
        "Admin %s updated user %d: %s",
        admin.username,
        user_id,
        ", ".join(f"{k}={v}" for k, v in sorted(changes.items())),
    )
    return MessageResponse(message="User updated successfully")


@router.post("/users/{user_id}/reset-password", response_model=MessageResponse)
async def reset_password(
    user_id: int,
    body: PasswordReset,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    user = await _get_user_or_404(db, user_id)
    user.password_hash = get_password_hash(body.new_password)
    await db.commit()
    logger.info("Admin %s reset password for user ID %d", admin.username, user_id)
    return MessageResponse(message="Password reset successfully")


# ── Foods ───────────────────────────────────────────────────────────
@router.get("/foods", response_model=AdminFoodListResponse)
async def list_foods(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> AdminFoodListResponse:
    usage_count = func.count(FoodLog.id).label("usage_count")
    result = await db.execute(
        select(Food, usage_count, func.sum(FoodLog.quantity).label("total_quantity"))
        .outerjoin(FoodLog, FoodLog.food_id == Food.id)
        .group_by(Food.id)
        .order_by(usage_count.desc(), Food.name.asc())
    )
    foods = []
    for food, usage, quantity in result.all():
        item = AdminFoodRead.model_validate(food)
        item.usage_count = usage or 0
        item.total_quantity_logged = float(quantity or 0)
        foods.append(item)
    return AdminFoodListResponse(foods=foods)


@router.get("/foods/categories", response_model=FoodCategoryListResponse)
async def list_categories(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> FoodCategoryListResponse:
    """Distinct catalog categories with how many live foods carry each."""
    result = await db.execute(
        select(Food.category, func.count(Food.id))
        .where(Food.category.is_not(None), Food.review_status != FOOD_REJECTED)
        .group_by(Food.category)
        .order_by(Food.category)
    )
    return FoodCategoryListResponse(
        categories=[FoodCategory(category=c, food_count=n) for c, n in result.all()]
    )


@router.post("/foods", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_food(
    body: FoodCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> CreatedResponse:
    await _ensure_food_name_free(db, body.name)
    food = Food(**body.model_dump(), created_by=admin.id)
    db.add(food)
    await db.commit()
    await db.refresh(food)
    logger.info("Admin %s added food %r", admin.username, food.name)
    return CreatedResponse(message="Food added successfully", id=food.id)


@router.put("/foods/{food_id}", response_model=MessageResponse)
async def update_food(
    food_id: int,
    body: FoodUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    food = await _get_food_or_404(db, food_id)
    changes = body.model_dump(exclude_unset=True)
    for required in ("name", "calories_per_unit", "default_unit"):
        if required in changes and changes[required] is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{required} cannot be null",
            )
    if changes.get("name"):
        await _ensure_food_name_free(db, changes["name"], exclude_id=food_id)

    for field, value in changes.items():
        setattr(food, field, value)
    await db.commit()
    logger.info("Admin %s updated food %d", admin.username, food_id)
    return MessageResponse(message="Food updated successfully")


@router.delete("/foods/{food_id}", response_model=MessageResponse)
async def delete_food(
    food_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    food = await _get_food_or_404(db, food_id)
    used = (
        await db.execute(select(func.count(FoodLog.id)).where(FoodLog.food_id == food_id))
    ).scalar_one()
    if used:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete food that has been logged by users",
        )
    await db.execute(delete(Food).where(Food.id == food.id))
    await db.commit()
    logger.info("Admin %s deleted food %d", admin.username, food_id)
    return MessageResponse(message="Food deleted successfully")


# ── Stats ───────────────────────────────────────────────────────────
@router.get("/stats", response_model=SystemStatsResponse)
async def system_stats(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> SystemStatsResponse:
    now = datetime.now(timezone.utc)

    async def scalar(stmt):
        return (await db.execute(stmt)).scalar_one()

    avg_goal = await scalar(
        select(func.avg(User.daily_calorie_goal)).where(User.is_active.is_(True))
    )
    stats = SystemStats(
        total_users=await scalar(select(func.count(User.id)).where(User.is_active.is_(True))),
        total_admins=await scalar(select(func.count(User.id)).where(User.role == ROLE_ADMIN)),
        total_foods=await scalar(select(func.count(Food.id))),
        total_logs=await scalar(select(func.count(FoodLog.id))),
        active_sessions=await scalar(
            select(func.count(AuthSession.id)).where(
                AuthSession.is_active.is_(True), AuthSession.expires_at > now
            )
        ),
        avg_calorie_goal=round(float(avg_goal), 2) if avg_goal is not None else None,
    )

    since = now - timedelta(days=RECENT_ACTIVITY_DAYS)
    registrations = await db.execute(
        select(User.username, User.created_at).where(User.created_at >= since)
    )
    food_logs = await db.execute(
        select(User.username, FoodLog.food_name, FoodLog.logged_at)
        .join(User, FoodLog.user_id == User.id)
        .where(FoodLog.logged_at >= since)
    )
    activity = [
        ActivityItem(activity_type="user_registration", description=r.username, activity_time=r.created_at)
        for r in registrations.all()
    ] + [
        ActivityItem(
            activity_type="food_log",
            description=f"{r.username} logged {r.food_name}",
            activity_time=r.logged_at,
        )
        for r in food_logs.all()
    ]
    activity.sort(key=lambda a: a.activity_time, reverse=True)
    return SystemStatsResponse(stats=stats, recent_activity=activity[:RECENT_ACTIVITY_LIMIT])


# ── External food cache ─────────────────────────────────────────────
@router.post("/cache/cleanup", response_model=CacheCleanupResponse)
async def cleanup_cache(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> CacheCleanupResponse:
    result = await run_cache_cleanup(db, settings)
    logger.info("Admin %s ran cache cleanup", admin.username)
    return CacheCleanupResponse(result=result)


@router.get("/cache/status", response_model=CacheStatusResponse)
async def cache_status(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> CacheStatusResponse:
    return CacheStatusResponse(
        cleanup_enabled=settings.CACHE_CLEANUP_ENABLED,
        cache_stats=await cache_statistics(db),
    )
