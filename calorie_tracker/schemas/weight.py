"""Pydantic schemas for body-weight tracking."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field, field_validator

from calorie_tracker.schemas.rewards import PointsAwarded


class WeightLogCreate(BaseModel):
    weight_kg: float = Field(ge=20, le=300)
    log_date: dt.date | None = None
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("notes")
    @classmethod
    def _notes(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


class WeightLogUpdate(BaseModel):
    weight_kg: float | None = Field(default=None, ge=20, le=300)
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("notes")
    @classmethod
    def _notes(cls, v: str | None) -> str | None:
        # An empty string clears the note.
        if v is None:
            return None
        return v.strip() or None


class WeightLogRead(BaseModel):
    id: int
    weight_kg: float
    log_date: dt.date
    notes: str | None
    change_from_previous: float | None = None

    model_config = {"from_attributes": True}


class WeightLogResponse(PointsAwarded):
    success: bool = True
    data: WeightLogRead


class WeightLogUpdatedResponse(BaseModel):
    success: bool = True
    message: str
    data: WeightLogRead


class WeightHistoryStats(BaseModel):
    entries: int
    starting_weight: float | None
    current_weight: float | None
    total_change: float | None


class WeightHistoryResponse(BaseModel):
    success: bool = True
    history: list[WeightLogRead]
    stats: WeightHistoryStats
