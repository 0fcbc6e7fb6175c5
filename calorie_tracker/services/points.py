"""
Points, levels, logging milestones and achievements.

Every award writes one ``earn`` row to the point ledger and raises both
the spendable and the lifetime balance. The account level follows the
lifetime balance; each level reached pays a bonus of its own. Logging
milestones count same-day food and weight logs and raise the multiplier
applied to the base reward for that kind of log.

Functions here only flush and leave the commit to the caller, except
``settle_log_reward`` which runs after the log itself is committed.
"""

from __future__ import annotations

import logging
from bisect import bisect_right
from datetime import date

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from calorie_tracker.models.rewards import (MILESTONE_FOOD, MILESTONE_WEIGHT, TRANSACTION_EARN,
                                            PointTransaction, UserAchievement, UserMilestone,
                                            UserPoints)
from calorie_tracker.models.user import User
from calorie_tracker.schemas.rewards import (LeaderboardEntry, MilestoneProgress, MilestoneRead,
                                             PointsAwarded, PointsDetail, PointsSummary)

logger = logging.getLogger(__name__)

DAILY_LOGIN = 100
FOOD_LOG = 50
WEIGHT_LOG = 150
FIRST_FOOD_LOG = 500
FIRST_WEIGHT_LOG = 500
MILESTONE_LEVEL_UP = 250
LEVEL_UP = 250

# Lifetime points needed for levels 1..10
LEVEL_THRESHOLDS = (0, 1000, 2500, 5000, 10000, 20000, 35000, 55000, 80000, 110000)

# Same-day logs needed for milestone levels 1..12; each level adds 0.1x
FOOD_MILESTONES = (0, 10, 25, 50, 100, 200, 350, 500, 750, 1000, 1500, 2000)
WEIGHT_MILESTONES = (0, 5, 10, 20, 35, 50, 75, 100, 150, 200, 300, 400)

_MILESTONE_THRESHOLDS = {MILESTONE_FOOD: FOOD_MILESTONES, MILESTONE_WEIGHT: WEIGHT_MILESTONES}
_BASE_REWARD = {MILESTONE_FOOD: FOOD_LOG, MILESTONE_WEIGHT: WEIGHT_LOG}
_FIRST_LOG = {
    MILESTONE_FOOD: ("FIRST_FOOD_LOG", "Food Logger", "Logged your first food", FIRST_FOOD_LOG),
    MILESTONE_WEIGHT: (
        "FIRST_WEIGHT_LOG", "Weight Tracker", "Logged your first weight", FIRST_WEIGHT_LOG
    ),
}


# ── Pure rules ──────────────────────────────────────────────────────
def level_for(lifetime_points: int) -> int:
    return max(1, bisect_right(LEVEL_THRESHOLDS, lifetime_points))


def milestone_level(total_logs: int, thresholds: tuple[int, ...]) -> int:
    return max(1, bisect_right(thresholds, total_logs))


def multiplier_for(level: int) -> float:
    return round(1 + (level - 1) * 0.1, 1)


def milestone_progress(total_logs: int, thresholds: tuple[int, ...]) -> MilestoneProgress:
    level = milestone_level(total_logs, thresholds)
    at_max = level >= len(thresholds)
    return MilestoneProgress(
        total_logs=total_logs,
        current_level=level,
        current_multiplier=multiplier_for(level),
        next_level=None if at_max else level + 1,
        next_multiplier=None if at_max else multiplier_for(level + 1),
        logs_until_next_level=None if at_max else thresholds[level] - total_logs,
    )


# ── Accounts & ledger ───────────────────────────────────────────────
async def get_account(db: AsyncSession, user_id: int) -> UserPoints | None:
    result = await db.execute(select(UserPoints).where(UserPoints.user_id == user_id))
    return result.scalar_one_or_none()


async def get_or_create_account(db: AsyncSession, user_id: int) -> UserPoints:
    account = await get_account(db, user_id)
    if account is None:
        account = UserPoints(
            user_id=user_id, current_points=0, lifetime_points=0, points_spent=0, level=1
        )
        db.add(account)
        await db.flush()
    return account


def _record(
    db: AsyncSession,
    account: UserPoints,
    points: int,
    reason: str,
    description: str | None,
    reference_type: str | None,
    reference_id: int | None,
) -> None:
    account.current_points += points
    account.lifetime_points += points
    db.add(
        PointTransaction(
            user_id=account.user_id,
            points=points,
            transaction_type=TRANSACTION_EARN,
            reason=reason,
            description=description,
            reference_type=reference_type,
            reference_id=reference_id,
        )
    )


async def award_points(
    db: AsyncSession,
    user_id: int,
    points: int,
    reason: str,
    description: str | None = None,
    reference_type: str | None = None,
    reference_id: int | None = None,
) -> list[PointsDetail]:
    """Credit ``points`` and pay any level-up bonuses this unlocks.

    Returns the level-up bonuses paid, the award itself excluded.
    """
    account = await get_or_create_account(db, user_id)
    _record(db, account, points, reason, description, reference_type, reference_id)

    bonuses: list[PointsDetail] = []
    # A bonus can itself cross the next threshold.
    while level_for(account.lifetime_points) > account.level:
        account.level += 1
        _record(
            db, account, LEVEL_UP, "level_up", f"Leveled up to Level {account.level}!", None, None
        )
        bonuses.append(PointsDetail(reason="level_up", points=LEVEL_UP, new_level=account.level))
        logger.info("User %d reached level %d", user_id, account.level)
    await db.flush()
    return bonuses


async def award_achievement(
    db: AsyncSession, user_id: int, code: str, name: str, description: str, points: int
) -> list[PointsDetail] | None:
    """Grant an achievement once. ``None`` if the user already holds it."""
    existing = await db.execute(
        select(UserAchievement.id).where(
            UserAchievement.user_id == user_id, UserAchievement.code == code
        )
    )
    if existing.first() is not None:
        return None
    db.add(
        UserAchievement(
            user_id=user_id, code=code, name=name, description=description, points_awarded=points
        )
    )
    details = [PointsDetail(reason=code.lower(), points=points)]
    if points > 0:
        details += await award_points(
            db, user_id, points, "achievement", f"Achievement unlocked: {name}", "achievement"
        )
    return details


# ── Milestones ──────────────────────────────────────────────────────
async def get_milestone(db: AsyncSession, user_id: int, kind: str) -> UserMilestone | None:
    result = await db.execute(
        select(UserMilestone).where(
            UserMilestone.user_id == user_id, UserMilestone.milestone_type == kind
        )
    )
    return result.scalar_one_or_none()


async def _count_milestone_log(db: AsyncSession, user_id: int, kind: str) -> list[PointsDetail]:
    milestone = await get_milestone(db, user_id, kind)
    if milestone is None:
        milestone = UserMilestone(
            user_id=user_id,
            milestone_type=kind,
            total_logs=0,
            milestone_level=1,
            points_multiplier=1.0,
        )
        db.add(milestone)

    milestone.total_logs += 1
    level = milestone_level(milestone.total_logs, _MILESTONE_THRESHOLDS[kind])
    if level <= milestone.milestone_level:
        await db.flush()
        return []

    milestone.milestone_level = level
    milestone.points_multiplier = multiplier_for(level)
    details = [
        PointsDetail(
            reason="milestone_level_up",
            points=MILESTONE_LEVEL_UP,
            new_level=level,
            multiplier=milestone.points_multiplier,
        )
    ]
    details += await award_points(
        db,
        user_id,
        MILESTONE_LEVEL_UP,
        f"{kind}_milestone_level_up",
        f"Reached {kind} logging Level {level}! Multiplier now {milestone.points_multiplier}x",
        "milestone",
    )
    return details


async def reward_log(
    db: AsyncSession, user_id: int, kind: str, log_id: int, log_date: date, today: date
) -> PointsAwarded:
    """Pay for a new food or weight log and advance its milestone.

    Only same-day logs earn anything; back-filled entries are free.
    """
    if log_date != today:
        return PointsAwarded()

    milestone = await get_milestone(db, user_id, kind)
    multiplier = milestone.points_multiplier if milestone is not None else 1.0
    base = _BASE_REWARD[kind]
    points = round(base * multiplier)

    details = [
        PointsDetail(reason=f"{kind}_log", points=points, base_points=base, multiplier=multiplier)
    ]
    details += await award_points(
        db,
        user_id,
        points,
        f"{kind}_log",
        f"Logged {kind} ({multiplier}x multiplier)",
        f"{kind}_log",
        log_id,
    )
    first = await award_achievement(db, user_id, *_FIRST_LOG[kind])
    if first:
        details += first
    details += await _count_milestone_log(db, user_id, kind)
    return PointsAwarded(points_awarded=sum(d.points for d in details), points_details=details)


async def settle_log_reward(
    db: AsyncSession, user_id: int, kind: str, log_id: int, log_date: date, today: date
) -> PointsAwarded:
    """Commit the reward for a log that is already saved.

    A failed reward is logged and rolled back; the log entry stands.
    """
    try:
        awarded = await reward_log(db, user_id, kind, log_id, log_date, today)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.warning("Could not award points for %s log %d", kind, log_id, exc_info=True)
        return PointsAwarded()
    return awarded


# ── Daily reward ────────────────────────────────────────────────────
async def claim_daily_reward(db: AsyncSession, user_id: int, today: date) -> int | None:
    """Award the daily login bonus. ``None`` if it was already claimed ``today``."""
    account = await get_or_create_account(db, user_id)
    # At most one claim per day matches, even under concurrent requests.
    claimed = await db.execute(
        update(UserPoints)
        .where(
            UserPoints.id == account.id,
            or_(
                UserPoints.last_daily_reward_date.is_(None),
                UserPoints.last_daily_reward_date != today,
            ),
        )
        .values(last_daily_reward_date=today)
    )
    if not claimed.rowcount:
        return None
    bonuses = await award_points(
        db, user_id, DAILY_LOGIN, "daily_login", "Daily login reward", "daily_login"
    )
    return DAILY_LOGIN + sum(b.points for b in bonuses)


# ── Read models ─────────────────────────────────────────────────────
def _milestone_read(milestone: UserMilestone | None) -> MilestoneRead:
    if milestone is None:
        return MilestoneRead(level=1, multiplier=1.0, current_count=0)
    return MilestoneRead(
        level=milestone.milestone_level,
        multiplier=milestone.points_multiplier,
        current_count=milestone.total_logs,
    )


async def points_summary(db: AsyncSession, user_id: int) -> PointsSummary:
    account = await get_account(db, user_id)
    achievements = (
        await db.execute(
            select(func.count(UserAchievement.id)).where(UserAchievement.user_id == user_id)
        )
    ).scalar_one()
    level = account.level if account is not None else 1
    return PointsSummary(
        current_points=account.current_points if account is not None else 0,
        lifetime_points=account.lifetime_points if account is not None else 0,
        points_spent=account.points_spent if account is not None else 0,
        level=level,
        next_level_at=LEVEL_THRESHOLDS[level] if level < len(LEVEL_THRESHOLDS) else None,
        achievements_count=achievements,
        last_daily_reward_date=account.last_daily_reward_date if account is not None else None,
        food_milestone=_milestone_read(await get_milestone(db, user_id, MILESTONE_FOOD)),
        weight_milestone=_milestone_read(await get_milestone(db, user_id, MILESTONE_WEIGHT)),
    )


async def milestone_overview(db: AsyncSession, user_id: int, kind: str) -> MilestoneProgress:
    milestone = await get_milestone(db, user_id, kind)
    total = milestone.total_logs if milestone is not None else 0
    return milestone_progress(total, _MILESTONE_THRESHOLDS[kind])


async def transaction_history(
    db: AsyncSession, user_id: int, limit: int, offset: int
) -> tuple[list[PointTransaction], int]:
    total = (
        await db.execute(
            select(func.count(PointTransaction.id)).where(PointTransaction.user_id == user_id)
        )
    ).scalar_one()
    result = await db.execute(
        select(PointTransaction)
        .where(PointTransaction.user_id == user_id)
        .order_by(PointTransaction.created_at.desc(), PointTransaction.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all()), total


async def leaderboard(db: AsyncSession, limit: int) -> list[LeaderboardEntry]:
    """Active users by lifetime points; ties go to the earlier account."""
    result = await db.execute(
        select(UserPoints, User.username)
        .join(User, User.id == UserPoints.user_id)
        .where(User.is_active.is_(True))
        .order_by(UserPoints.lifetime_points.desc(), UserPoints.id.asc())
        .limit(limit)
    )
    return [
        LeaderboardEntry(
            rank=rank,
            user_id=account.user_id,
            username=username,
            level=account.level,
            lifetime_points=account.lifetime_points,
            current_points=account.current_points,
        )
        for rank, (account, username) in enumerate(result.all(), start=1)
    ]
