"""Internal maintenance endpoints.

Mounted ONLY when COFISH_ENV=test (see create_api_router). They wipe and
fabricate data and must never be reachable in staging or prod.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cofish.api.deps import get_db
from cofish.auth.middleware import Viewer, get_viewer
from cofish.responses import success_response
from cofish.schemas.admin import ResetPointsRequest, SeedRequest
from cofish.services import admin as admin_service

router = APIRouter(prefix="/internal/admin")


@router.post("/seed", status_code=201)
def seed_catches(
    request: SeedRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = admin_service.seed_dummy_catches(
        db,
        request.user_id,
        request.center_lat,
        request.center_lng,
        count=request.count,
        radius_miles=request.radius_miles,
        species=request.species,
    )
    return success_response(result.model_dump(mode="json"))


@router.post("/delete-all")
def delete_all(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = admin_service.delete_all_data(db)
    return success_response(result.model_dump(mode="json"))


@router.post("/reset-points")
def reset_points(
    request: ResetPointsRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = admin_service.reset_user_points(db, request.user_id, request.points_balance)
    return success_response(result.model_dump(mode="json"))


@router.get("/catches/{catch_id}")
def debug_catch(
    catch_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = admin_service.debug_catch(db, catch_id)
    return success_response(result.model_dump(mode="json"))
