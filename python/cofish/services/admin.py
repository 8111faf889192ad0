"""Maintenance operations.

Seeding, wiping and inspection helpers for development and test
environments. Reachable only through the cofish-admin CLI and the internal
admin routes, which are mounted in the test environment only.
"""

import random
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from cofish.db.models import Catch, InfoPurchase, KarmaEvent, User, VerificationStatus
from cofish.db.session import transaction
from cofish.errors import ApiErrorCode, NotFoundError
from cofish.logging import get_logger
from cofish.schemas.admin import CatchDebugOut, DeleteAllOut, SeedOut
from cofish.schemas.users import UserOut
from cofish.services.catches import BASE_POINTS
from cofish.services.geo import jitter_point
from cofish.services.records import (
    create,
    get,
    get_catch_or_404,
    get_user_or_404,
    update_versioned,
)

logger = get_logger(__name__)

SEED_SPECIES = (
    "Striped Bass",
    "Bluefish",
    "Flounder",
    "Black Sea Bass",
    "Tautog",
    "Scup",
    "Weakfish",
)
SEED_MAX_AGE = timedelta(days=3)


def find_user_by_email(db: Session, email: str) -> User:
    user = db.execute(select(User).where(User.email == email).limit(1)).scalar_one_or_none()
    if user is None:
        raise NotFoundError(ApiErrorCode.E_USER_NOT_FOUND, f"No user with email {email}")
    return user


def seed_dummy_catches(
    db: Session,
    user_id: UUID,
    center_lat: float,
    center_lng: float,
    count: int = 10,
    radius_miles: float = 5.0,
    species: str | None = None,
    rng: random.Random | None = None,
) -> SeedOut:
    """Create `count` VERIFIED catches scattered around a center.

    Each lands within radius_miles of the center with a created_at somewhere
    in the last three days. Species is fixed when given, otherwise drawn from
    SEED_SPECIES. Points are not credited.
    """
    rng = rng or random.Random()
    get_user_or_404(db, user_id)
    now = datetime.now(UTC)

    catch_ids: list[UUID] = []
    with transaction(db):
        for _ in range(count):
            point = jitter_point(center_lat, center_lng, radius_miles, rng=rng)
            catch = Catch(
                user_id=user_id,
                created_at=now - SEED_MAX_AGE * rng.random(),
                species=species or rng.choice(SEED_SPECIES),
                lat=point.lat,
                lng=point.lng,
                base_points=BASE_POINTS,
                karma_points=0,
                verification_status=VerificationStatus.VERIFIED,
            )
            create(db, catch)
            catch_ids.append(catch.id)

    logger.info("dummy_catches_seeded", user_id=str(user_id), count=len(catch_ids))
    return SeedOut(user_id=user_id, created_count=len(catch_ids), catch_ids=catch_ids)


def delete_all_data(db: Session) -> DeleteAllOut:
    """Delete every karma event, purchase and catch. Users are kept."""
    with transaction(db):
        karma_events = db.execute(delete(KarmaEvent)).rowcount
        purchases = db.execute(delete(InfoPurchase)).rowcount
        catches = db.execute(delete(Catch)).rowcount

    logger.warning(
        "all_data_deleted", karma_events=karma_events, purchases=purchases, catches=catches
    )
    return DeleteAllOut(karma_events=karma_events, purchases=purchases, catches=catches)


def reset_user_points(db: Session, user_id: UUID, points_balance: int = 0) -> UserOut:
    """Overwrite a user's balance. The ledger will show drift afterwards."""
    user = get_user_or_404(db, user_id)
    with transaction(db):
        updated = update_versioned(db, User, user_id, user.version, points_balance=points_balance)

    logger.warning(
        "user_points_reset",
        user_id=str(user_id),
        previous_balance=user.points_balance,
        new_balance=points_balance,
    )
    return UserOut.model_validate(updated)


def debug_catch(db: Session, catch_id: UUID) -> CatchDebugOut:
    """Full stored state of a catch, with its owner's balance and karma links."""
    catch = get_catch_or_404(db, catch_id)
    owner = get(db, User, catch.user_id)

    karma_events = db.execute(
        select(func.count()).select_from(KarmaEvent).where(KarmaEvent.source_catch_id == catch_id)
    ).scalar_one()

    # included_catch_ids is a JSON list; count in Python to stay portable
    included_in = sum(
        1
        for ids in db.execute(
            select(InfoPurchase.included_catch_ids).where(
                InfoPurchase.included_catch_ids.is_not(None)
            )
        ).scalars()
        if ids and str(catch_id) in ids
    )

    return CatchDebugOut(
        id=catch.id,
        user_id=catch.user_id,
        created_at=catch.created_at,
        verification_status=catch.verification_status.value,
        species=catch.species,
        lat=catch.lat,
        lng=catch.lng,
        base_points=catch.base_points,
        karma_points=catch.karma_points,
        alive_score=catch.alive_score,
        analysis_confidence=catch.analysis_confidence,
        analysis_note=catch.analysis_note,
        fish_fingerprint=catch.fish_fingerprint,
        embedding_dimensions=len(catch.fish_embedding) if catch.fish_embedding else None,
        version=catch.version,
        owner_balance=owner.points_balance if owner is not None else None,
        karma_events_as_source=karma_events,
        included_in_purchases=included_in,
    )
