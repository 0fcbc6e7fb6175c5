"""
External food endpoints: product search and logging backed by
Open Food Facts, with a local cache in front of it.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from calorie_tracker.api.v1.deps import (get_current_user, get_db, get_food_provider,
                                         get_optional_user, require_admin)
from calorie_tracker.core.config import settings
from calorie_tracker.core.rate_limit import limiter
from calorie_tracker.models.food import FoodLog
from calorie_tracker.models.rewards import MILESTONE_FOOD
from calorie_tracker.models.user import User
from calorie_tracker.schemas.auth import CurrentUser
from calorie_tracker.schemas.external_food import (ExternalDetailResponse, ExternalFoodDetail,
                                                   ExternalFoodLogCreate, ExternalHealthResponse,
                                                   ExternalSearchResponse, ExternalStatsResponse)
from calorie_tracker.schemas.food import FoodLogCreatedResponse
from calorie_tracker.services import external_foods
from calorie_tracker.services.external_foods import FoodProvider
from calorie_tracker.services.open_food_facts import SOURCE_NAME, nutrition_score
from calorie_tracker.services.points import settle_log_reward

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/external-foods", tags=["external-foods"])

MAX_SEARCH_LIMIT = 20


@router.get("/search", response_model=ExternalSearchResponse)
@limiter.limit(settings.EXTERNAL_SEARCH_RATE_LIMIT)
async def search(
    request: Request,
    q: str = Query(..., min_length=2, max_length=100),
    limit: int = Query(default=10, ge=1, le=MAX_SEARCH_LIMIT),
    identity: CurrentUser | None = Depends(get_optional_user),
    provider: FoodProvider = Depends(get_food_provider),
    db: AsyncSession = Depends(get_db),
) -> ExternalSearchResponse:
    """Search cached and external products. Anonymous callers get a smaller page."""
    query = q.strip()
    if len(query) < 2:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Query must be at least 2 characters",
        )
    if identity is None:
        limit = min(limit, settings.ANONYMOUS_SEARCH_LIMIT)

    foods = await external_foods.search_foods(db, provider, query, limit)
    return ExternalSearchResponse(
        foods=foods,
        source=SOURCE_NAME,
        cached=bool(foods) and foods[0].cached_at is not None,
        count=len(foods),
    )


@router.get("/details/{external_id}", response_model=ExternalDetailResponse)
async def details(
    external_id: str,
    _identity: CurrentUser = Depends(get_current_user),
    provider: FoodProvider = Depends(get_food_provider),
    db: AsyncSession = Depends(get_db),
) -> ExternalDetailResponse:
    product = await external_foods.get_details(db, provider, external_id)
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return ExternalDetailResponse(
        product=ExternalFoodDetail(**product.model_dump(), nutrition_score=nutrition_score(product))
    )


@router.post("/log", response_model=FoodLogCreatedResponse, status_code=status.HTTP_201_CREATED)
async def log_external_food(
    body: ExternalFoodLogCreate,
    identity: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> FoodLogCreatedResponse:
    today = datetime.now(timezone.utc).date()
    entry = FoodLog(
        user_id=identity.user_id,
        food_id=None,
        food_name=body.name,
        quantity=body.quantity,
        unit=body.unit,
        calories=body.calories,
        log_date=body.log_date or today,
        external_food_id=body.external_food_id,
        brand=body.brand,
        protein_per_100g=body.protein_per_100g,
        carbs_per_100g=body.carbs_per_100g,
        fat_per_100g=body.fat_per_100g,
        fiber_per_100g=body.fiber_per_100g,
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)

    await external_foods.bump_usage(db, body.external_food_id)
    awarded = await settle_log_reward(
        db, identity.user_id, MILESTONE_FOOD, entry.id, entry.log_date, today
    )
    return FoodLogCreatedResponse(
        message="External food logged successfully", log_id=entry.id, **awarded.model_dump()
    )


@router.get("/health", response_model=ExternalHealthResponse)
async def health(
    _identity: CurrentUser = Depends(get_current_user),
    provider: FoodProvider = Depends(get_food_provider),
) -> ExternalHealthResponse:
    healthy = await provider.health_check()
    return ExternalHealthResponse(
        services={"open_food_facts": "healthy" if healthy else "unhealthy"},
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@router.get("/admin/stats", response_model=ExternalStatsResponse)
async def admin_stats(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ExternalStatsResponse:
    return ExternalStatsResponse(
        usage_stats=await external_foods.usage_statistics(db),
        cache_stats=await external_foods.cache_statistics(db),
        recent_logs=await external_foods.recent_external_logs(db),
    )
