"""TargetZone market schemas.

Contains request and response models for activity previews, purchases and
obfuscated overlays.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ActivityBucket(str, Enum):
    """Coarse activity level shown by a preview."""

    NONE = "NONE"
    SOME = "SOME"
    GOOD = "GOOD"
    HIGH = "HIGH"


class ZoneTier(str, Enum):
    """TargetZone precision tier."""

    standard = "standard"
    precision = "precision"


# =============================================================================
# Output Schemas
# =============================================================================


class NearbyCatchOut(BaseModel):
    """A catch within range of a center point.

    Exact coordinates; only returned to the market internals and the
    nearby-scan route, never to overlay consumers.
    """

    id: UUID
    user_id: UUID
    lat: float
    lng: float
    species: str | None
    created_at: datetime
    distance_miles: float


class BoundingBoxOut(BaseModel):
    min_lat: float
    min_lng: float
    max_lat: float
    max_lng: float


class PreviewOut(BaseModel):
    """Result of a rationed activity preview."""

    bucket: ActivityBucket
    remaining_previews: int | None
    radius_miles: float
    window_hours: int
    bounding_box: BoundingBoxOut


class PurchaseOut(BaseModel):
    """Response schema for a TargetZone purchase."""

    id: UUID
    user_id: UUID
    created_at: datetime
    center_lat: float
    center_lng: float
    radius_miles: float
    species_filter: str | None
    base_cost_points: int
    discount_percent: int
    final_cost_points: int
    avg_age_hours: float | None
    included_catch_ids: list[str] | None
    new_balance: int

    model_config = ConfigDict(from_attributes=True)


class ObfuscatedCircleOut(BaseModel):
    """A jittered circle standing in for one catch."""

    id: UUID
    lat: float
    lng: float
    radius_miles: float


class OverlayOut(BaseModel):
    tier: ZoneTier
    circles: list[ObfuscatedCircleOut]


# =============================================================================
# Request Schemas
# =============================================================================


class PreviewRequest(BaseModel):
    center_lat: float = Field(..., ge=-90, le=90)
    center_lng: float = Field(..., ge=-180, le=180)


class PurchaseRequest(BaseModel):
    """Request schema for buying a TargetZone.

    Omitting radius_miles/base_cost_points buys the standard tier.
    """

    center_lat: float = Field(..., ge=-90, le=90)
    center_lng: float = Field(..., ge=-180, le=180)
    tier: ZoneTier = ZoneTier.standard
    species_filter: str | None = Field(None, max_length=200)


class OverlayRequest(BaseModel):
    center_lat: float = Field(..., ge=-90, le=90)
    center_lng: float = Field(..., ge=-180, le=180)
    tier: ZoneTier = ZoneTier.standard
