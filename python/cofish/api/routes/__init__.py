"""API route definitions.

Uses a factory so importing route modules never loads settings; tests can
import them without a configured environment.
"""

from fastapi import APIRouter

from cofish.api.routes.catches import router as catches_router
from cofish.api.routes.health import router as health_router
from cofish.api.routes.me import router as me_router
from cofish.api.routes.target_zones import router as target_zones_router


def create_api_router(include_test_routes: bool = False) -> APIRouter:
    """Create the API router.

    Args:
        include_test_routes: Mount the internal maintenance routes (test env only).
    """
    api_router = APIRouter()
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(me_router, tags=["user"])
    api_router.include_router(catches_router, tags=["catches"])
    api_router.include_router(target_zones_router, tags=["target-zones"])

    if include_test_routes:
        from cofish.api.routes.admin import router as admin_router

        api_router.include_router(admin_router, tags=["admin"])

    return api_router


__all__ = ["create_api_router"]
