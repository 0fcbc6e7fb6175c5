"""Small response envelopes shared across endpoint modules."""

from __future__ import annotations

from pydantic import BaseModel


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class CreatedResponse(MessageResponse):
    id: int


class HealthResponse(BaseModel):
    status: str
    database: str
    timestamp: str
    version: str
