"""
Local cache in front of the external food provider.

Search and detail lookups read the cache first and only go to the provider
for what is missing; everything the provider returns is written back.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Protocol

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from calorie_tracker.db.filters import LIKE_ESCAPE, contains_pattern
from calorie_tracker.models.external_food import CachedExternalFood
from calorie_tracker.models.food import FoodLog
from calorie_tracker.models.user import User
from calorie_tracker.schemas.external_food import ExternalFood

logger = logging.getLogger(__name__)

CACHED_FIELDS = (
    "name",
    "source",
    "calories_per_100g",
    "protein_per_100g",
    "carbs_per_100g",
    "fat_per_100g",
    "fiber_per_100g",
    "brand",
    "countries",
    "image_url",
)


class FoodProvider(Protocol):
    async def search_regional(self, query: str, limit: int = 20) -> list[ExternalFood]: ...

    async def get_product(self, barcode: str) -> ExternalFood | None: ...

    async def health_check(self) -> bool: ...


async def get_cached_foods(db: AsyncSession, query: str, limit: int) -> list[ExternalFood]:
    pattern = contains_pattern(query.lower())
    result = await db.execute(
        select(CachedExternalFood)
        .where(
            or_(
                func.lower(CachedExternalFood.name).like(pattern, escape=LIKE_ESCAPE),
                func.lower(func.coalesce(CachedExternalFood.brand, "")).like(
                    pattern, escape=LIKE_ESCAPE
                ),
            )
        )
        .order_by(CachedExternalFood.usage_count.desc(), CachedExternalFood.cached_at.desc())
        .limit(limit)
    )
    return [ExternalFood.model_validate(row) for row in result.scalars().all()]


async def get_cached_by_id(db: AsyncSession, external_id: str) -> ExternalFood | None:
    result = await db.execute(
        select(CachedExternalFood).where(CachedExternalFood.external_id == external_id)
    )
    row = result.scalar_one_or_none()
    return ExternalFood.model_validate(row) if row is not None else None


async def cache_products(db: AsyncSession, foods: list[ExternalFood]) -> None:
    """Insert new products; refresh and bump usage on ones already cached."""
    if not foods:
        return
    now = datetime.now(timezone.utc)
    ids = [f.external_id for f in foods]
    result = await db.execute(
        select(CachedExternalFood).where(CachedExternalFood.external_id.in_(ids))
    )
    existing = {row.external_id: row for row in result.scalars().all()}

    for food in foods:
        row = existing.get(food.external_id)
        if row is None:
            row = CachedExternalFood(external_id=food.external_id, usage_count=1)
            db.add(row)
            existing[food.external_id] = row
        else:
            row.usage_count = (row.usage_count or 0) + 1
        for field in CACHED_FIELDS:
            setattr(row, field, getattr(food, field))
        row.cached_at = now
    try:
        await db.commit()
    except IntegrityError:
        # Another request cached one of these products first; its row wins.
        await db.rollback()
        logger.info("Concurrent cache write for %d external products; skipped", len(foods))
        return
    logger.debug("Cached %d external products", len(foods))


async def bump_usage(db: AsyncSession, external_id: str) -> None:
    row = (
        await db.execute(
            select(CachedExternalFood).where(CachedExternalFood.external_id == external_id)
        )
    ).scalar_one_or_none()
    if row is None:
        return
    row.usage_count = (row.usage_count or 0) + 1
    row.cached_at = datetime.now(timezone.utc)
    await db.commit()


async def search_foods(
    db: AsyncSession, provider: FoodProvider, query: str, limit: int
) -> list[ExternalFood]:
    """Cached matches first, topped up from the provider and deduplicated."""
    cached = await get_cached_foods(db, query, limit)
    if len(cached) >= limit:
        return cached

    fresh = await provider.search_regional(query, limit)
    if fresh:
        await cache_products(db, fresh)

    results = list(cached)
    seen = {f.external_id for f in cached}
    for food in fresh:
        if food.external_id not in seen:
            seen.add(food.external_id)
            results.append(food)
    return results[:limit]


async def get_details(
    db: AsyncSession, provider: FoodProvider, external_id: str
) -> ExternalFood | None:
    cached = await get_cached_by_id(db, external_id)
    if cached is not None:
        return cached
    product = await provider.get_product(external_id)
    if product is not None:
        await cache_products(db, [product])
    return product


async def usage_statistics(db: AsyncSession) -> dict[str, Any]:
    row = (
        await db.execute(
            select(
                func.count(func.distinct(FoodLog.external_food_id)).label("unique_foods"),
                func.count(FoodLog.id).label("total_logs"),
                func.coalesce(func.sum(FoodLog.calories), 0).label("total_calories"),
                func.avg(FoodLog.calories).label("avg_calories_per_log"),
            ).where(FoodLog.external_food_id.is_not(None))
        )
    ).one()
    return {
        "unique_foods": row.unique_foods,
        "total_logs": row.total_logs,
        "total_calories": float(row.total_calories or 0),
        "avg_calories_per_log": (
            round(float(row.avg_calories_per_log), 2) if row.avg_calories_per_log is not None else None
        ),
    }


async def cache_statistics(db: AsyncSession) -> dict[str, Any]:
    row = (
        await db.execute(
            select(
                func.count(CachedExternalFood.id).label("cached_foods"),
                func.coalesce(func.sum(CachedExternalFood.usage_count), 0).label("total_usage"),
                func.avg(CachedExternalFood.usage_count).label("avg_usage_per_food"),
                func.max(CachedExternalFood.usage_count).label("max_usage"),
                func.max(CachedExternalFood.cached_at).label("last_cached"),
            )
        )
    ).one()
    return {
        "cached_foods": row.cached_foods,
        "total_usage": int(row.total_usage or 0),
        "avg_usage_per_food": (
            round(float(row.avg_usage_per_food), 2) if row.avg_usage_per_food is not None else None
        ),
        "max_usage": row.max_usage,
        "last_cached": row.last_cached,
    }


async def recent_external_logs(db: AsyncSession, limit: int = 10) -> list[dict[str, Any]]:
    result = await db.execute(
        select(FoodLog.food_name, FoodLog.brand, FoodLog.calories, FoodLog.logged_at, User.username)
        .join(User, FoodLog.user_id == User.id)
        .where(FoodLog.external_food_id.is_not(None))
        .order_by(FoodLog.logged_at.desc())
        .limit(limit)
    )
    return [
        {
            "name": r.food_name,
            "brand": r.brand,
            "calories": r.calories,
            "logged_at": r.logged_at,
            "username": r.username,
        }
        for r in result.all()
    ]
