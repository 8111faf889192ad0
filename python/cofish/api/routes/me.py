"""Current user endpoints: profile and points history."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cofish.api.deps import get_db
from cofish.auth.middleware import Viewer, get_viewer
from cofish.responses import success_response
from cofish.services import bootstrap as bootstrap_service
from cofish.services import ledger as ledger_service

router = APIRouter()


@router.get("/me")
def get_me(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """The viewer's profile, including the current points balance."""
    result = bootstrap_service.get_profile(db, viewer.user_id)
    return success_response(result.model_dump(mode="json"))


@router.get("/me/ledger")
def get_my_ledger(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Points history, newest first, with the balance after each entry."""
    result = ledger_service.compute_ledger(db, viewer.user_id)
    return success_response(result.model_dump(mode="json"))
