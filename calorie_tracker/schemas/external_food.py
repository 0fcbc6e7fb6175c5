"""Pydantic schemas for products from the external food database."""

from __future__ import annotations

import datetime as dt
from typing import Any

from pydantic import BaseModel, Field, field_validator


class ExternalFood(BaseModel):
    """A normalised product, either fresh from the provider or from the cache."""

    external_id: str
    name: str
    calories_per_100g: float
    protein_per_100g: float | None = None
    carbs_per_100g: float | None = None
    fat_per_100g: float | None = None
    fiber_per_100g: float | None = None
    brand: str | None = None
    countries: str | None = None
    image_url: str | None = None
    source: str = "Open Food Facts"
    allergens: list[str] = Field(default_factory=list)
    cached_at: dt.datetime | None = None
    usage_count: int | None = None

    model_config = {"from_attributes": True}


class ExternalFoodDetail(ExternalFood):
    nutrition_score: int


class ExternalSearchResponse(BaseModel):
    success: bool = True
    foods: list[ExternalFood]
    source: str
    cached: bool
    count: int


class ExternalDetailResponse(BaseModel):
    success: bool = True
    product: ExternalFoodDetail


class ExternalFoodLogCreate(BaseModel):
    external_food_id: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=255)
    quantity: float = Field(gt=0)
    unit: str = Field(default="g", min_length=1, max_length=10)
    calories: float = Field(ge=0)
    brand: str | None = Field(default=None, max_length=255)
    protein_per_100g: float | None = Field(default=None, ge=0)
    carbs_per_100g: float | None = Field(default=None, ge=0)
    fat_per_100g: float | None = Field(default=None, ge=0)
    fiber_per_100g: float | None = Field(default=None, ge=0)
    log_date: dt.date | None = None

    @field_validator("external_food_id", "name", "unit")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Must not be empty")
        return v


class ExternalHealthResponse(BaseModel):
    success: bool = True
    services: dict[str, str]
    timestamp: str


class ExternalStatsResponse(BaseModel):
    success: bool = True
    usage_stats: dict[str, Any]
    cache_stats: dict[str, Any]
    recent_logs: list[dict[str, Any]]
