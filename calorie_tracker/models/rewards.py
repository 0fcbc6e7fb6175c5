"""
Reward models: point balances, the point ledger, logging milestones and
one-off achievements.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import (Column, Date, DateTime, Float, ForeignKey, Index, Integer,
                        String, UniqueConstraint)

from calorie_tracker.db.base import Base

TRANSACTION_EARN = "earn"

MILESTONE_FOOD = "food"
MILESTONE_WEIGHT = "weight"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserPoints(Base):
    __tablename__ = "user_points"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_id: int = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)  # type: ignore[assignment]
    current_points: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    lifetime_points: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    points_spent: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    level: int = Column(Integer, nullable=False, default=1)  # type: ignore[assignment]
    last_daily_reward_date: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(DateTime(timezone=True), default=_utcnow)  # type: ignore[assignment]
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
    )


class PointTransaction(Base):
    """Append-only ledger; earn rows sum to the account's lifetime points."""

    __tablename__ = "point_transactions"
    __table_args__ = (Index("ix_point_transactions_user_created", "user_id", "created_at"),)

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_id: int = Column(Integer, ForeignKey("users.id"), nullable=False)  # type: ignore[assignment]
    points: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    transaction_type: str = Column(String(10), nullable=False, default=TRANSACTION_EARN)  # type: ignore[assignment]
    reason: str = Column(String(50), nullable=False)  # type: ignore[assignment]
    description: str | None = Column(String(255), nullable=True)  # type: ignore[assignment]
    reference_type: str | None = Column(String(50), nullable=True)  # type: ignore[assignment]
    reference_id: int | None = Column(Integer, nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(DateTime(timezone=True), default=_utcnow)  # type: ignore[assignment]


class UserMilestone(Base):
    __tablename__ = "user_milestones"
    __table_args__ = (
        UniqueConstraint("user_id", "milestone_type", name="uq_milestone_user_type"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_id: int = Column(Integer, ForeignKey("users.id"), nullable=False)  # type: ignore[assignment]
    milestone_type: str = Column(String(10), nullable=False)  # type: ignore[assignment]  # food | weight
    total_logs: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    milestone_level: int = Column(Integer, nullable=False, default=1)  # type: ignore[assignment]
    points_multiplier: float = Column(Float, nullable=False, default=1.0)  # type: ignore[assignment]
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
    )


class UserAchievement(Base):
    __tablename__ = "user_achievements"
    __table_args__ = (UniqueConstraint("user_id", "code", name="uq_achievement_user_code"),)

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_id: int = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)  # type: ignore[assignment]
    code: str = Column(String(50), nullable=False)  # type: ignore[assignment]
    name: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    description: str | None = Column(String(255), nullable=True)  # type: ignore[assignment]
    points_awarded: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    earned_at: datetime = Column(DateTime(timezone=True), default=_utcnow)  # type: ignore[assignment]
