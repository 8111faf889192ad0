"""Health check endpoint."""

from fastapi import APIRouter

from cofish.responses import success_response

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    """Liveness only; does not touch the database or Redis."""
    return success_response({"status": "ok"})
