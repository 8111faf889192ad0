"""TargetZone market routes.

Routes are transport-only: one service call each, success envelope out.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from cofish.api.deps import get_db, get_preview_quota
from cofish.auth.middleware import Viewer, get_viewer
from cofish.responses import success_response
from cofish.schemas.target_zones import OverlayRequest, PreviewRequest, PurchaseRequest
from cofish.services import target_zones as target_zones_service
from cofish.services.preview_quota import PreviewQuota

router = APIRouter()


@router.get("/target-zones/nearby")
def list_nearby_catches(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    center_lat: Annotated[float, Query(ge=-90, le=90)],
    center_lng: Annotated[float, Query(ge=-180, le=180)],
    radius_miles: Annotated[float, Query(gt=0, le=50)] = target_zones_service.STANDARD_RADIUS_MILES,
    hours_back: Annotated[
        int, Query(gt=0, le=24 * 90)
    ] = target_zones_service.PREVIEW_WINDOW_HOURS,
) -> dict:
    """Other anglers' located catches near a point, with distances."""
    result = target_zones_service.get_nearby_catches(
        db,
        center_lat,
        center_lng,
        radius_miles,
        hours_back,
        exclude_user_id=viewer.user_id,
    )
    return success_response([c.model_dump(mode="json") for c in result])


@router.post("/target-zones/preview")
def preview_activity(
    request: PreviewRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    quota: Annotated[PreviewQuota, Depends(get_preview_quota)],
) -> dict:
    """Coarse activity bucket. Returns 429 once today's previews are used."""
    result = target_zones_service.preview_activity(
        db, viewer.user_id, request.center_lat, request.center_lng, quota=quota
    )
    return success_response(result.model_dump(mode="json"))


@router.post("/target-zones/purchases", status_code=201)
def purchase_target_zone(
    request: PurchaseRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Buy a TargetZone. Returns 409 E_INSUFFICIENT_BALANCE when short."""
    result = target_zones_service.purchase_tier(
        db,
        viewer.user_id,
        request.center_lat,
        request.center_lng,
        request.tier,
        species_filter=request.species_filter,
    )
    return success_response(result.model_dump(mode="json"))


@router.post("/target-zones/overlay")
def load_overlay(
    request: OverlayRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Jittered circles for nearby catches. Returns 403 without a covering purchase."""
    result = target_zones_service.load_overlay(
        db, viewer.user_id, request.center_lat, request.center_lng, tier=request.tier
    )
    return success_response(result.model_dump(mode="json"))
