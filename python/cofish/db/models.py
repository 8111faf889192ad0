"""SQLAlchemy ORM models for CoFish.

Four tables back the points economy: users, catches, info_purchases and
karma_events. Every table carries a `version` column; all updates go through
cofish.services.records.update_versioned, which compares and bumps it.
"""

from datetime import datetime
from enum import Enum as PyEnum
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from cofish.db.types import UTCDateTime, utcnow


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# =============================================================================
# Enums
# =============================================================================


class VerificationStatus(str, PyEnum):
    """Catch lifecycle states.

    States:
        PENDING_VERIFICATION: Posted, waiting for oracle analysis
        VERIFIED: Alive, confident and unique; eligible for award
        REJECTED: Failed liveness, confidence or uniqueness
        AWARDED: Base points credited (terminal)
    """

    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"
    AWARDED = "AWARDED"


# =============================================================================
# Models
# =============================================================================


class User(Base):
    """Angler account.

    The user ID matches the identity provider subject (sub claim).
    """

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    email: Mapped[str] = mapped_column(Text, nullable=False)
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    points_balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)


class Catch(Base):
    """A posted catch video and its verification outcome."""

    __tablename__ = "catches"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    species: Mapped[str | None] = mapped_column(Text, nullable=True)
    lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    lng: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Opaque object storage keys
    video_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    thumbnail_key: Mapped[str | None] = mapped_column(Text, nullable=True)

    base_points: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    karma_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    verification_status: Mapped[VerificationStatus] = mapped_column(
        Enum(
            VerificationStatus,
            name="verification_status_enum",
            native_enum=False,
            length=32,
        ),
        nullable=False,
        default=VerificationStatus.PENDING_VERIFICATION,
    )

    # Oracle output
    alive_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    analysis_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    analysis_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    fish_fingerprint: Mapped[str | None] = mapped_column(Text, nullable=True)
    fish_embedding: Mapped[list[float] | None] = mapped_column(
        JSON(none_as_null=True), nullable=True
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("base_points >= 0", name="ck_catches_base_points_nonneg"),
        CheckConstraint("karma_points >= 0", name="ck_catches_karma_points_nonneg"),
        CheckConstraint(
            "(lat IS NULL AND lng IS NULL) OR (lat IS NOT NULL AND lng IS NOT NULL)",
            name="ck_catches_location_pair",
        ),
        Index("ix_catches_user_created", "user_id", "created_at"),
        Index("ix_catches_created", "created_at"),
    )


class InfoPurchase(Base):
    """A TargetZone purchase. Immutable after creation."""

    __tablename__ = "info_purchases"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    center_lat: Mapped[float] = mapped_column(Float, nullable=False)
    center_lng: Mapped[float] = mapped_column(Float, nullable=False)
    radius_miles: Mapped[float] = mapped_column(Float, nullable=False)
    species_filter: Mapped[str | None] = mapped_column(Text, nullable=True)

    base_cost_points: Mapped[int] = mapped_column(Integer, nullable=False)
    discount_percent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    final_cost_points: Mapped[int] = mapped_column(Integer, nullable=False)

    avg_age_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    # Ordered list of catch id strings; fixed at creation
    included_catch_ids: Mapped[list[str] | None] = mapped_column(
        JSON(none_as_null=True), nullable=True
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("radius_miles > 0", name="ck_info_purchases_radius_positive"),
        CheckConstraint("final_cost_points >= 0", name="ck_info_purchases_cost_nonneg"),
        CheckConstraint(
            "discount_percent >= 0 AND discount_percent <= 100",
            name="ck_info_purchases_discount_range",
        ),
        Index("ix_info_purchases_user_created", "user_id", "created_at"),
        Index("ix_info_purchases_created", "created_at"),
    )


class KarmaEvent(Base):
    """Audit record of a karma credit.

    helper_user_id owns the source catch (the one included in a purchase);
    beneficiary_user_id posted the new catch that triggered distribution.
    """

    __tablename__ = "karma_events"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    helper_user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    beneficiary_user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    source_catch_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("catches.id", ondelete="CASCADE"), nullable=False
    )
    beneficiary_catch_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("catches.id", ondelete="CASCADE"), nullable=False
    )
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("points > 0", name="ck_karma_events_points_positive"),
        Index("ix_karma_events_helper_created", "helper_user_id", "created_at"),
    )
