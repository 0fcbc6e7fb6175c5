"""
Public health check: database connectivity.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from calorie_tracker.api.v1.deps import get_db
from calorie_tracker.core.config import settings
from calorie_tracker.schemas.common import HealthResponse

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


@router.get("/health", response_model=HealthResponse)
async def health(response: Response, db: AsyncSession = Depends(get_db)) -> HealthResponse:
    database = "connected"
    try:
        await db.execute(select(1))
    except (SQLAlchemyError, OSError) as e:
        logger.error("Health check DB failure: %s", e)
        database = "disconnected"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(
        status="OK" if database == "connected" else "ERROR",
        database=database,
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=settings.VERSION,
    )
