"""Maintenance operation schemas (test environments and the admin CLI only)."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class SeedRequest(BaseModel):
    user_id: UUID
    center_lat: float = Field(..., ge=-90, le=90)
    center_lng: float = Field(..., ge=-180, le=180)
    count: int = Field(default=10, ge=1, le=500)
    radius_miles: float = Field(default=5.0, gt=0)
    species: str | None = None


class SeedOut(BaseModel):
    user_id: UUID
    created_count: int
    catch_ids: list[UUID]


class DeleteAllOut(BaseModel):
    karma_events: int
    purchases: int
    catches: int


class ResetPointsRequest(BaseModel):
    user_id: UUID
    points_balance: int = Field(default=0, ge=0)


class CatchDebugOut(BaseModel):
    """Everything stored about a catch, plus derived context."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    created_at: datetime
    verification_status: str
    species: str | None
    lat: float | None
    lng: float | None
    base_points: int
    karma_points: int
    alive_score: float | None
    analysis_confidence: float | None
    analysis_note: str | None
    fish_fingerprint: str | None
    embedding_dimensions: int | None
    version: int
    owner_balance: int | None
    karma_events_as_source: int
    included_in_purchases: int
