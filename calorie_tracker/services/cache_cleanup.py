"""Cache cleanup: prune the external food cache by age, usage and size."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from calorie_tracker.models.external_food import CachedExternalFood
from calorie_tracker.schemas.admin import CacheCleanupResult

if TYPE_CHECKING:
    from calorie_tracker.core.config import Settings

logger = logging.getLogger(__name__)


async def run_cache_cleanup(
    db: AsyncSession, settings: "Settings", now: datetime | None = None
) -> CacheCleanupResult:
    """
    Delete stale or surplus cache entries, in this order:

    1. older than CACHE_UNUSED_DAYS with usage below CACHE_MIN_USAGE
    2. older than CACHE_MAX_AGE_DAYS regardless of usage
    3. everything outside the top CACHE_MAX_ENTRIES by usage, then recency

    Idempotent: safe to run repeatedly.
    """
    if not settings.CACHE_CLEANUP_ENABLED:
        logger.info("Cache cleanup is disabled (CACHE_CLEANUP_ENABLED=false); skipping.")
        return CacheCleanupResult(enabled=False)

    now = now or datetime.now(timezone.utc)
    unused_cutoff = now - timedelta(days=settings.CACHE_UNUSED_DAYS)
    max_age_cutoff = now - timedelta(days=settings.CACHE_MAX_AGE_DAYS)

    old_unused = await db.execute(
        delete(CachedExternalFood).where(
            CachedExternalFood.cached_at < unused_cutoff,
            CachedExternalFood.usage_count < settings.CACHE_MIN_USAGE,
        )
    )
    very_old = await db.execute(
        delete(CachedExternalFood).where(CachedExternalFood.cached_at < max_age_cutoff)
    )
    keep = (
        select(CachedExternalFood.id)
        .order_by(CachedExternalFood.usage_count.desc(), CachedExternalFood.cached_at.desc())
        .limit(settings.CACHE_MAX_ENTRIES)
    )
    excess = await db.execute(
        delete(CachedExternalFood).where(CachedExternalFood.id.not_in(keep))
    )
    await db.commit()

    result = CacheCleanupResult(
        enabled=True,
        old_unused_removed=old_unused.rowcount or 0,
        very_old_removed=very_old.rowcount or 0,
        excess_removed=excess.rowcount or 0,
    )
    if result.old_unused_removed or result.very_old_removed or result.excess_removed:
        logger.info(
            "Cache cleanup: old_unused=%d very_old=%d excess=%d",
            result.old_unused_removed,
            result.very_old_removed,
            result.excess_removed,
        )
    return result
