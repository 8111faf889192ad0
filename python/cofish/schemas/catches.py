"""Catch schemas.

Contains request and response models for catch posting, verification and award.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from cofish.db.models import VerificationStatus

# =============================================================================
# Output Schemas
# =============================================================================


class CatchOut(BaseModel):
    """Response schema for a catch.

    fish_embedding is omitted; it is internal to duplicate detection.
    """

    id: UUID
    user_id: UUID
    created_at: datetime
    species: str | None
    lat: float | None
    lng: float | None
    video_key: str | None
    thumbnail_key: str | None
    base_points: int
    karma_points: int
    verification_status: VerificationStatus
    alive_score: float | None
    analysis_confidence: float | None
    analysis_note: str | None
    fish_fingerprint: str | None

    model_config = ConfigDict(from_attributes=True)


class UniquenessOut(BaseModel):
    """Duplicate-detection outcome.

    similarity_score is the matching score for duplicates, or the highest
    score seen for unique catches (None when nothing was compared).
    """

    is_unique: bool
    similarity_score: float | None = None
    similar_catch_id: UUID | None = None


class AwardOut(BaseModel):
    """Result of awarding a verified catch."""

    catch_id: UUID
    points_awarded: int
    new_balance: int
    karma_awarded: int = 0


class KarmaDistributionOut(BaseModel):
    """Karma credited to helpers when a new catch was awarded."""

    catch_id: UUID
    purchases_scanned: int
    awarded_catch_ids: list[UUID]
    total_points: int


# =============================================================================
# Request Schemas
# =============================================================================


class CreateCatchRequest(BaseModel):
    """Request schema for posting a catch.

    The video has already been uploaded; storage_key references it.
    Location is stored only when both lat and lng are present.
    """

    storage_key: str = Field(..., min_length=1, max_length=1024)
    lat: float | None = Field(None, ge=-90, le=90)
    lng: float | None = Field(None, ge=-180, le=180)
    catch_id: UUID | None = None
    thumbnail_key: str | None = Field(None, max_length=1024)
    species: str | None = Field(None, max_length=200)


class AnalysisIn(BaseModel):
    """Aggregated oracle output supplied by a trusted analysis client."""

    alive_score: float = Field(..., ge=0, le=1)
    confidence: float = Field(..., ge=0, le=1)
    species: str = ""
    fingerprint: str = ""
    explanation: str = ""


class RecordAnalysisRequest(BaseModel):
    """Request schema for recording analysis on a pending catch."""

    analysis: AnalysisIn
    fish_embedding: list[float] | None = None
    uniqueness: UniquenessOut | None = None


class UniquenessRequest(BaseModel):
    """Request schema for a duplicate check against the owner's history."""

    fish_embedding: list[float] | None = None

    @model_validator(mode="after")
    def validate_embedding(self) -> "UniquenessRequest":
        if self.fish_embedding is not None and len(self.fish_embedding) == 0:
            raise ValueError("fish_embedding must not be empty")
        return self
