"""
Food catalog & food log models: core business domain.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import (Column, Date, DateTime, Float, ForeignKey, Index,
                        Integer, String)
from sqlalchemy.orm import relationship

from calorie_tracker.db.base import Base

# Catalog entries added by signed-in users wait for an admin to review them.
FOOD_PENDING = "pending"
FOOD_VERIFIED = "verified"
FOOD_REJECTED = "rejected"


class Food(Base):
    __tablename__ = "foods"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(100), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    calories_per_unit: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    default_unit: str = Column(String(20), nullable=False)  # type: ignore[assignment]
    category: str | None = Column(String(50), nullable=True)  # type: ignore[assignment]
    brand: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    created_by: int | None = Column(Integer, ForeignKey("users.id"), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    review_status: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default=FOOD_VERIFIED,
        server_default=FOOD_VERIFIED,
        index=True,
    )  # pending | verified | rejected
    reviewed_by: int | None = Column(Integer, ForeignKey("users.id"), nullable=True)  # type: ignore[assignment]
    reviewed_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    review_notes: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]

    logs = relationship("FoodLog", back_populates="food")


class FoodLog(Base):
    __tablename__ = "food_logs"
    __table_args__ = (Index("ix_food_logs_user_date", "user_id", "log_date"),)

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_id: int = Column(Integer, ForeignKey("users.id"), nullable=False)  # type: ignore[assignment]
    food_id: int | None = Column(Integer, ForeignKey("foods.id"), nullable=True)  # type: ignore[assignment]
    food_name: str = Column(String(255), nullable=False)  # type: ignore[assignment]
    quantity: float = Column(Float, nullable=False)  # type: ignore[assignment]
    unit: str = Column(String(20), nullable=False)  # type: ignore[assignment]
    calories: float = Column(Float, nullable=False)  # type: ignore[assignment]
    log_date: date = Column(Date, nullable=False, index=True)  # type: ignore[assignment]
    logged_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )

    # Set only for products logged from the external food database
    external_food_id: str | None = Column(String(100), nullable=True, index=True)  # type: ignore[assignment]
    brand: str | None = Column(String(255), nullable=True)  # type: ignore[assignment]
    protein_per_100g: float | None = Column(Float, nullable=True)  # type: ignore[assignment]
    carbs_per_100g: float | None = Column(Float, nullable=True)  # type: ignore[assignment]
    fat_per_100g: float | None = Column(Float, nullable=True)  # type: ignore[assignment]
    fiber_per_100g: float | None = Column(Float, nullable=True)  # type: ignore[assignment]

    food = relationship("Food", back_populates="logs")
