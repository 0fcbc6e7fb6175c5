"""
Food catalog endpoints: public browse/search, contributions from anyone.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from calorie_tracker.api.v1.deps import get_db, get_optional_user
from calorie_tracker.db.filters import LIKE_ESCAPE, contains_pattern
from calorie_tracker.models.food import FOOD_PENDING, FOOD_REJECTED, Food
from calorie_tracker.schemas.auth import CurrentUser
from calorie_tracker.schemas.food import (FoodCreate, FoodCreatedResponse, FoodListResponse,
                                          FoodRead, FoodResponse, FoodSearchResponse)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/foods", tags=["foods"])

SEARCH_LIMIT = 20


@router.get("", response_model=FoodListResponse)
async def list_foods(
    _identity: CurrentUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> FoodListResponse:
    result = await db.execute(
        select(Food).where(Food.review_status != FOOD_REJECTED).order_by(Food.name)
    )
    return FoodListResponse(foods=[FoodRead.model_validate(f) for f in result.scalars().all()])


@router.get("/search", response_model=FoodSearchResponse)
async def search_foods(
    q: str = Query(..., min_length=1, max_length=100),
    _identity: CurrentUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> FoodSearchResponse:
    """Case-insensitive literal substring match on name, capped at 20 results."""
    term = q.strip()
    if not term:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Search query is required")
    result = await db.execute(
        select(Food)
        .where(
            func.lower(Food.name).like(contains_pattern(term.lower()), escape=LIKE_ESCAPE),
            Food.review_status != FOOD_REJECTED,
        )
        .order_by(Food.name)
        .limit(SEARCH_LIMIT)
    )
    return FoodSearchResponse(
        foods=[FoodRead.model_validate(f) for f in result.scalars().all()],
        query=term,
    )


@router.get("/{food_id}", response_model=FoodResponse)
async def get_food(
    food_id: int,
    _identity: CurrentUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> FoodResponse:
    food = await db.get(Food, food_id)
    if food is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Food not found")
    return FoodResponse(food=FoodRead.model_validate(food))


@router.post("", response_model=FoodCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_food(
    body: FoodCreate,
    identity: CurrentUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> FoodCreatedResponse:
    """Add a catalog entry pending admin review.

    Authenticated callers are recorded as its contributor.
    """
    existing = await db.execute(select(Food.id).where(Food.name == body.name))
    if existing.first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Food with this name already exists",
        )

    food = Food(
        name=body.name,
        calories_per_unit=body.calories_per_unit,
        default_unit=body.default_unit,
        category=body.category,
        brand=body.brand,
        created_by=identity.user_id if identity else None,
        review_status=FOOD_PENDING,
    )
    db.add(food)
    await db.commit()
    await db.refresh(food)

    logger.info("Food %r created by %s", food.name, identity.username if identity else "anonymous")
    return FoodCreatedResponse(
        message="Food created successfully",
        food_id=food.id,
        contributed_to_database=identity is not None,
    )
