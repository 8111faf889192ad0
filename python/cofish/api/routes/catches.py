"""Catch routes.

Routes are transport-only:
- Extract viewer_user_id from request.state
- Call exactly one service function
- Return success(...) or raise ApiError

Catches belonging to other users answer 404.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cofish.api.deps import get_db
from cofish.auth.middleware import Viewer, get_viewer
from cofish.responses import success_response
from cofish.schemas.catches import CreateCatchRequest, RecordAnalysisRequest, UniquenessRequest
from cofish.services import catches as catches_service

router = APIRouter()


@router.post("/catches", status_code=201)
def create_catch(
    request: CreateCatchRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Record an uploaded catch video as PENDING_VERIFICATION."""
    result = catches_service.create_pending_catch(
        db,
        viewer.user_id,
        request.storage_key,
        lat=request.lat,
        lng=request.lng,
        catch_id=request.catch_id,
        thumbnail_key=request.thumbnail_key,
        species=request.species,
    )
    return success_response(result.model_dump(mode="json"))


@router.get("/catches/{catch_id}")
def get_catch(
    catch_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = catches_service.get_catch(db, viewer.user_id, catch_id)
    return success_response(result.model_dump(mode="json"))


@router.post("/catches/{catch_id}/analysis")
def record_analysis(
    catch_id: UUID,
    request: RecordAnalysisRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Settle a pending catch from supplied oracle output.

    Returns 409 E_CATCH_INVALID_STATE if the catch is no longer pending.
    """
    result = catches_service.update_catch_after_analysis(
        db,
        catch_id,
        request.analysis,
        fish_embedding=request.fish_embedding,
        uniqueness=request.uniqueness,
        viewer_id=viewer.user_id,
    )
    return success_response(result.model_dump(mode="json"))


@router.post("/catches/{catch_id}/uniqueness")
def check_uniqueness(
    catch_id: UUID,
    request: UniquenessRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = catches_service.check_uniqueness_for_viewer(
        db, viewer.user_id, catch_id, request.fish_embedding
    )
    return success_response(result.model_dump(mode="json"))


@router.post("/catches/{catch_id}/award")
def award_catch(
    catch_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Credit a verified catch's base points.

    Returns 409 E_CATCH_ALREADY_AWARDED on a repeat call and
    E_CATCH_NOT_VERIFIED for any other non-verified status.
    """
    result = catches_service.award_points_for_verified_catch(
        db, catch_id, viewer_id=viewer.user_id
    )
    return success_response(result.model_dump(mode="json"))
