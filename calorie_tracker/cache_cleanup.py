"""
CLI entrypoint for the external food cache cleanup. Run from cron, e.g.:

  python -m calorie_tracker.cache_cleanup

Or nightly: 0 2 * * * cd /path/to/calorie-tracker && .venv/bin/python -m calorie_tracker.cache_cleanup
"""

import asyncio
import logging
import sys

from calorie_tracker.core.config import settings
from calorie_tracker.db.session import async_session_factory, engine
from calorie_tracker.services.cache_cleanup import run_cache_cleanup

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


async def _run() -> int:
    try:
        async with async_session_factory() as db:
            result = await run_cache_cleanup(db, settings)
        logger.info(
            "Cache cleanup completed: old_unused=%d very_old=%d excess=%d",
            result.old_unused_removed,
            result.very_old_removed,
            result.excess_removed,
        )
        return 0
    except Exception as e:
        logger.exception("Cache cleanup job failed: %s", e)
        return 1
    finally:
        await engine.dispose()


def main() -> int:
    """Prune the external food cache once and exit."""
    return asyncio.run(_run())


if __name__ == "__main__":
    sys.exit(main())
