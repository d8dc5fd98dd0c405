"""Pydantic v2 request/response schemas for review endpoints."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ReviewCreateRequest(BaseModel):
    target_uid: str = Field(..., min_length=1, max_length=128)
    rating: int = Field(..., ge=1, le=10)
    comment: str = Field(..., min_length=1, max_length=2000)
    type: Literal["normal", "emergency", "report"] = "normal"
    phone_number_snapshot: str | None = Field(default=None, max_length=32)


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    reviewer_uid: str
    target_uid: str
    rating: int
    comment: str
    type: str
    created_at: datetime


class ReviewAverageResponse(BaseModel):
    uid: str
    average: float | None = None


class WeekUsageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    used: int
    remaining: int


class ReviewSummaryResponse(BaseModel):
    average: float | None = None
    count: int = 0
    week: WeekUsageResponse


class StrikeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    reason: str
    strike_number: int
    timeout_hours: int
    timeout_expires_at: datetime
    created_at: datetime


class StrikeStatusResponse(BaseModel):
    strikes: list[StrikeResponse] = Field(default_factory=list)
    timeout_expires_at: datetime | None = None
