"""Karma distribution.

When a catch is awarded, anglers whose earlier catches were sold as TargetZone
intel near it get credit. For every purchase made in the 7 days before the
new catch, each included source catch within KARMA_PROXIMITY_RADIUS_MILES of
the new catch earns KARMA_POINTS: its karma_points grows and its owner's
balance is credited, together with a KarmaEvent audit row, in one
transaction per source catch.

Distribution is best-effort. A failing source catch is rolled back, logged
and skipped; nothing here raises into the award that triggered it.
"""

from datetime import timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from cofish.db.models import Catch, InfoPurchase, KarmaEvent, VerificationStatus
from cofish.db.session import transaction
from cofish.errors import ApiError
from cofish.logging import get_logger
from cofish.schemas.catches import KarmaDistributionOut
from cofish.services.geo import haversine_miles
from cofish.services.ledger import credit_points
from cofish.services.records import (
    create,
    get,
    get_catch_or_404,
    iter_recent,
    retry_on_conflict,
    update_versioned,
)

logger = get_logger(__name__)

# Fixed, independent of the purchase's own radius tier
KARMA_PROXIMITY_RADIUS_MILES = 2.0
KARMA_POINTS = 50
KARMA_WINDOW = timedelta(days=7)
KARMA_PURCHASE_PAGE_SIZE = 50


def award_karma_to_catch(
    db: Session,
    source_catch_id: UUID,
    beneficiary_catch: Catch,
    amount: int = KARMA_POINTS,
) -> int:
    """Credit karma to one source catch and its owner, and audit it.

    Commits on success. Returns the source catch's new karma_points.
    """
    with transaction(db):

        def bump_karma() -> Catch:
            source = get_catch_or_404(db, source_catch_id)
            return update_versioned(
                db,
                Catch,
                source_catch_id,
                source.version,
                karma_points=(source.karma_points or 0) + amount,
            )

        source = retry_on_conflict(bump_karma)
        credit_points(db, source.user_id, amount)
        create(
            db,
            KarmaEvent(
                helper_user_id=source.user_id,
                beneficiary_user_id=beneficiary_catch.user_id,
                source_catch_id=source.id,
                beneficiary_catch_id=beneficiary_catch.id,
                points=amount,
            ),
        )

    return source.karma_points


def _eligible_source(db: Session, source_catch_id: UUID, new_catch: Catch) -> Catch | None:
    source = get(db, Catch, source_catch_id)
    if source is None:
        logger.info("karma_source_missing", source_catch_id=str(source_catch_id))
        return None
    if source.id == new_catch.id or source.user_id == new_catch.user_id:
        return None
    if source.lat is None or source.lng is None:
        logger.info("karma_source_missing_location", source_catch_id=str(source_catch_id))
        return None
    if source.verification_status != VerificationStatus.AWARDED:
        logger.info(
            "karma_source_not_awarded",
            source_catch_id=str(source_catch_id),
            status=source.verification_status.value,
        )
        return None
    return source


def distribute_karma_for_new_catch(db: Session, new_catch: Catch) -> KarmaDistributionOut:
    """Award karma to source catches near new_catch that earlier purchases included.

    Every purchase in the window is scanned, page by page. Each source catch
    is credited at most once per call, however many purchases included it.
    """
    result = KarmaDistributionOut(
        catch_id=new_catch.id,
        purchases_scanned=0,
        awarded_catch_ids=[],
        total_points=0,
    )

    if new_catch.lat is None or new_catch.lng is None:
        logger.info("karma_skipped_no_location", catch_id=str(new_catch.id))
        return result

    purchases = iter_recent(
        db,
        InfoPurchase,
        since=new_catch.created_at - KARMA_WINDOW,
        until=new_catch.created_at,
        page_size=KARMA_PURCHASE_PAGE_SIZE,
    )

    awarded: set[str] = set()

    for purchase in purchases:
        result.purchases_scanned += 1
        for raw_id in purchase.included_catch_ids or []:
            if not raw_id or raw_id in awarded:
                continue

            try:
                source_catch_id = UUID(str(raw_id))
                source = _eligible_source(db, source_catch_id, new_catch)
                if source is None:
                    continue

                distance = haversine_miles(new_catch.lat, new_catch.lng, source.lat, source.lng)
                if distance > KARMA_PROXIMITY_RADIUS_MILES:
                    logger.info(
                        "karma_source_out_of_range",
                        source_catch_id=raw_id,
                        distance_miles=round(distance, 3),
                    )
                    continue

                award_karma_to_catch(db, source_catch_id, new_catch)
                awarded.add(raw_id)
                result.awarded_catch_ids.append(source_catch_id)
                result.total_points += KARMA_POINTS
                logger.info(
                    "karma_awarded",
                    source_catch_id=raw_id,
                    beneficiary_catch_id=str(new_catch.id),
                    purchase_id=str(purchase.id),
                    distance_miles=round(distance, 3),
                    points=KARMA_POINTS,
                )
            except (ApiError, ValueError) as e:
                db.rollback()
                logger.warning(
                    "karma_source_failed",
                    source_catch_id=str(raw_id),
                    error=str(e),
                )

    return result
