"""TargetZone market: previews, purchases and obfuscated overlays.

Anglers spend points to learn where others have been catching. Three levels
of disclosure, from least to most:

- Preview: a coarse activity bucket for a ~15x15 mi window. Free, but rationed
  per day (cofish.services.preview_quota).
- Purchase: buys a TargetZone. The catches in range at purchase time are
  recorded on the purchase (included_catch_ids) so their owners can later be
  credited karma.
- Overlay: jittered circles standing in for nearby catches, only for viewers
  holding a purchase that covers the area. Exact coordinates never leave the
  market.
"""

import random
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from cofish.db.models import Catch, InfoPurchase
from cofish.db.session import transaction
from cofish.errors import (
    ForbiddenError,
    InsufficientBalanceError,
    InvalidRequestError,
    StoreError,
)
from cofish.logging import get_logger
from cofish.schemas.target_zones import (
    ActivityBucket,
    BoundingBoxOut,
    NearbyCatchOut,
    ObfuscatedCircleOut,
    OverlayOut,
    PreviewOut,
    PurchaseOut,
    ZoneTier,
)
from cofish.services.geo import bounding_box, haversine_miles, jitter_point
from cofish.services.ledger import debit_points
from cofish.services.preview_quota import PreviewQuota, get_preview_quota
from cofish.services.records import create, get_user_or_404, list_by_user, list_recent

logger = get_logger(__name__)

STANDARD_RADIUS_MILES = 2
STANDARD_COST_POINTS = 100
PRECISION_RADIUS_MILES = 1
PRECISION_UPGRADE_COST_POINTS = 200

# tier -> (purchase radius, cost)
TIER_PRICING: dict[ZoneTier, tuple[float, int]] = {
    ZoneTier.standard: (STANDARD_RADIUS_MILES, STANDARD_COST_POINTS),
    ZoneTier.precision: (PRECISION_RADIUS_MILES, PRECISION_UPGRADE_COST_POINTS),
}

# Half side of the 15x15 mi preview window
PREVIEW_RADIUS_MILES = 7.5
PREVIEW_WINDOW_HOURS = 24 * 7
PURCHASE_WINDOW_HOURS = 24 * 30
NEARBY_SCAN_LIMIT = 500

OVERLAY_JITTER_FACTOR = 0.7
OVERLAY_PURCHASE_MAX_AGE = timedelta(days=7)


def get_nearby_catches(
    db: Session,
    center_lat: float,
    center_lng: float,
    radius_miles: float,
    hours_back: float,
    exclude_user_id: UUID | None = None,
    limit: int = NEARBY_SCAN_LIMIT,
    now: datetime | None = None,
) -> list[NearbyCatchOut]:
    """Located catches within radius_miles of the center in the trailing window.

    The scan reads at most `limit` of the newest candidate rows, then filters
    by great-circle distance (inclusive).
    """
    now = now or datetime.now(UTC)
    cutoff = now - timedelta(hours=hours_back)

    where = [Catch.lat.is_not(None), Catch.lng.is_not(None)]
    if exclude_user_id is not None:
        where.append(Catch.user_id != exclude_user_id)

    candidates = list_recent(db, Catch, since=cutoff, limit=limit, where=tuple(where))

    nearby: list[NearbyCatchOut] = []
    for catch in candidates:
        distance = haversine_miles(center_lat, center_lng, catch.lat, catch.lng)
        if distance <= radius_miles:
            nearby.append(
                NearbyCatchOut(
                    id=catch.id,
                    user_id=catch.user_id,
                    lat=catch.lat,
                    lng=catch.lng,
                    species=catch.species,
                    created_at=catch.created_at,
                    distance_miles=distance,
                )
            )
    return nearby


def bucket_for_count(count: int) -> ActivityBucket:
    if count <= 0:
        return ActivityBucket.NONE
    if count <= 3:
        return ActivityBucket.SOME
    if count <= 10:
        return ActivityBucket.GOOD
    return ActivityBucket.HIGH


def preview_activity(
    db: Session,
    viewer_id: UUID,
    center_lat: float,
    center_lng: float,
    quota: PreviewQuota | None = None,
) -> PreviewOut:
    """Coarse activity level around a center, rationed per day.

    The preview is reserved before the scan and is not refunded: a failed
    scan degrades to NONE.

    Raises:
        ApiError(E_PREVIEW_LIMIT_REACHED): No previews left today.
    """
    quota = quota or get_preview_quota()
    remaining = quota.reserve(viewer_id)

    bucket = ActivityBucket.NONE
    try:
        nearby = get_nearby_catches(
            db,
            center_lat,
            center_lng,
            PREVIEW_RADIUS_MILES,
            PREVIEW_WINDOW_HOURS,
            exclude_user_id=viewer_id,
        )
        bucket = bucket_for_count(len(nearby))
    except StoreError as e:
        db.rollback()
        logger.warning("preview_scan_failed", error=str(e))

    box = bounding_box(center_lat, center_lng, PREVIEW_RADIUS_MILES)
    logger.info("preview_served", bucket=bucket.value, remaining=remaining)
    return PreviewOut(
        bucket=bucket,
        remaining_previews=remaining,
        radius_miles=PREVIEW_RADIUS_MILES,
        window_hours=PREVIEW_WINDOW_HOURS,
        bounding_box=BoundingBoxOut(
            min_lat=box.min_lat,
            min_lng=box.min_lng,
            max_lat=box.max_lat,
            max_lng=box.max_lng,
        ),
    )


def _purchase_to_out(purchase: InfoPurchase, new_balance: int) -> PurchaseOut:
    return PurchaseOut(
        id=purchase.id,
        user_id=purchase.user_id,
        created_at=purchase.created_at,
        center_lat=purchase.center_lat,
        center_lng=purchase.center_lng,
        radius_miles=purchase.radius_miles,
        species_filter=purchase.species_filter,
        base_cost_points=purchase.base_cost_points,
        discount_percent=purchase.discount_percent,
        final_cost_points=purchase.final_cost_points,
        avg_age_hours=purchase.avg_age_hours,
        included_catch_ids=purchase.included_catch_ids,
        new_balance=new_balance,
    )


def purchase_target_zone(
    db: Session,
    viewer_id: UUID,
    center_lat: float,
    center_lng: float,
    radius_miles: float,
    base_cost_points: int,
    species_filter: str | None = None,
    now: datetime | None = None,
) -> PurchaseOut:
    """Buy a TargetZone and pay for it.

    The in-range catches (trailing 30 days, not the buyer's, optionally one
    species) are frozen onto the purchase. That lookup is best-effort: if it
    fails the purchase goes through with no included catches. The purchase
    row and the debit commit together.

    Raises:
        InvalidRequestError: Non-positive radius or negative cost.
        InsufficientBalanceError: Balance below the cost; nothing is written.
    """
    if radius_miles <= 0:
        raise InvalidRequestError(message="radius_miles must be positive")
    if base_cost_points < 0:
        raise InvalidRequestError(message="base_cost_points must not be negative")

    now = now or datetime.now(UTC)
    discount_percent = 0
    final_cost_points = base_cost_points

    buyer = get_user_or_404(db, viewer_id)
    if buyer.points_balance < final_cost_points:
        raise InsufficientBalanceError(balance=buyer.points_balance, required=final_cost_points)

    included_catch_ids: list[str] | None = None
    avg_age_hours: float | None = None
    try:
        nearby = get_nearby_catches(
            db,
            center_lat,
            center_lng,
            radius_miles,
            PURCHASE_WINDOW_HOURS,
            exclude_user_id=viewer_id,
            now=now,
        )
        if species_filter:
            wanted = species_filter.lower()
            nearby = [c for c in nearby if c.species and c.species.lower() == wanted]

        if nearby:
            included_catch_ids = [str(c.id) for c in nearby]
            total_hours = sum((now - c.created_at).total_seconds() / 3600 for c in nearby)
            avg_age_hours = total_hours / len(nearby)
    except StoreError as e:
        db.rollback()
        logger.warning("purchase_nearby_scan_failed", error=str(e))

    purchase = InfoPurchase(
        user_id=viewer_id,
        center_lat=center_lat,
        center_lng=center_lng,
        radius_miles=radius_miles,
        species_filter=species_filter or None,
        base_cost_points=base_cost_points,
        discount_percent=discount_percent,
        final_cost_points=final_cost_points,
        avg_age_hours=avg_age_hours,
        included_catch_ids=included_catch_ids,
    )

    with transaction(db):
        create(db, purchase)
        if final_cost_points > 0:
            new_balance = debit_points(db, viewer_id, final_cost_points)
        else:
            new_balance = buyer.points_balance

    logger.info(
        "target_zone_purchased",
        purchase_id=str(purchase.id),
        radius_miles=radius_miles,
        cost=final_cost_points,
        included_count=len(included_catch_ids or []),
        new_balance=new_balance,
    )
    return _purchase_to_out(purchase, new_balance)


def purchase_tier(
    db: Session,
    viewer_id: UUID,
    center_lat: float,
    center_lng: float,
    tier: ZoneTier,
    species_filter: str | None = None,
) -> PurchaseOut:
    """Buy a TargetZone at a tier's standard radius and price."""
    radius_miles, cost = TIER_PRICING[tier]
    return purchase_target_zone(
        db, viewer_id, center_lat, center_lng, radius_miles, cost, species_filter=species_filter
    )


def purchase_precision_upgrade(
    db: Session,
    viewer_id: UUID,
    center_lat: float,
    center_lng: float,
    species_filter: str | None = None,
) -> PurchaseOut:
    return purchase_tier(
        db, viewer_id, center_lat, center_lng, ZoneTier.precision, species_filter=species_filter
    )


def obfuscation_radius_for(tier: ZoneTier) -> float:
    return PRECISION_RADIUS_MILES if tier == ZoneTier.precision else STANDARD_RADIUS_MILES


def build_obfuscated_overlay(
    catches: Sequence[NearbyCatchOut],
    tier: ZoneTier,
    rng: random.Random | None = None,
) -> list[ObfuscatedCircleOut]:
    """One jittered circle per catch.

    Jitter stays within 0.7x the circle radius, so each true location lies
    inside its circle.
    """
    radius = obfuscation_radius_for(tier)
    jitter_radius = radius * OVERLAY_JITTER_FACTOR

    circles = []
    for catch in catches:
        point = jitter_point(catch.lat, catch.lng, jitter_radius, rng=rng)
        circles.append(
            ObfuscatedCircleOut(id=catch.id, lat=point.lat, lng=point.lng, radius_miles=radius)
        )
    return circles


def require_covering_purchase(
    db: Session,
    viewer_id: UUID,
    center_lat: float,
    center_lng: float,
    tier: ZoneTier,
    now: datetime | None = None,
) -> InfoPurchase:
    """The viewer's recent purchase that unlocks an overlay at this center.

    Standard overlays accept any tier; precision overlays need a precision
    purchase.

    Raises:
        ForbiddenError(E_FORBIDDEN): No such purchase.
    """
    now = now or datetime.now(UTC)
    purchases = list_by_user(
        db, InfoPurchase, viewer_id, since=now - OVERLAY_PURCHASE_MAX_AGE, limit=50
    )
    for purchase in purchases:
        if tier == ZoneTier.precision and purchase.radius_miles != PRECISION_RADIUS_MILES:
            continue
        distance = haversine_miles(center_lat, center_lng, purchase.center_lat, purchase.center_lng)
        if distance <= PREVIEW_RADIUS_MILES:
            return purchase

    raise ForbiddenError(message="Purchase a TargetZone covering this area first")


def load_overlay(
    db: Session,
    viewer_id: UUID,
    center_lat: float,
    center_lng: float,
    tier: ZoneTier = ZoneTier.standard,
    rng: random.Random | None = None,
) -> OverlayOut:
    """Obfuscated circles for other anglers' recent catches around a center."""
    require_covering_purchase(db, viewer_id, center_lat, center_lng, tier)

    nearby = get_nearby_catches(
        db,
        center_lat,
        center_lng,
        PREVIEW_RADIUS_MILES,
        PREVIEW_WINDOW_HOURS,
        exclude_user_id=viewer_id,
    )
    return OverlayOut(tier=tier, circles=build_obfuscated_overlay(nearby, tier, rng=rng))
