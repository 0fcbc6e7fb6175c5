"""
CachedExternalFood model: local copy of products fetched from Open Food Facts.

Search and detail lookups hit this table first; ``usage_count`` drives
which rows survive cache cleanup.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, Integer, String

from calorie_tracker.db.base import Base


class CachedExternalFood(Base):
    __tablename__ = "cached_external_foods"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    external_id: str = Column(String(100), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    source: str = Column(String(100), nullable=False, default="Open Food Facts")  # type: ignore[assignment]
    name: str = Column(String(255), nullable=False, index=True)  # type: ignore[assignment]
    calories_per_100g: float = Column(Float, nullable=False)  # type: ignore[assignment]
    protein_per_100g: float | None = Column(Float, nullable=True)  # type: ignore[assignment]
    carbs_per_100g: float | None = Column(Float, nullable=True)  # type: ignore[assignment]
    fat_per_100g: float | None = Column(Float, nullable=True)  # type: ignore[assignment]
    fiber_per_100g: float | None = Column(Float, nullable=True)  # type: ignore[assignment]
    brand: str | None = Column(String(255), nullable=True)  # type: ignore[assignment]
    countries: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    image_url: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    usage_count: int = Column(Integer, nullable=False, default=1, server_default="1")  # type: ignore[assignment]
    cached_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
