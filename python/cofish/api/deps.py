"""FastAPI dependencies for route handlers."""

from fastapi import Request

from cofish.db.session import get_db, get_session_factory
from cofish.errors import UpstreamOracleError
from cofish.services.preview_quota import PreviewQuota
from cofish.services.preview_quota import get_preview_quota as _global_preview_quota
from cofish.services.vision import VisionOracle

__all__ = ["get_db", "get_preview_quota", "get_session_factory", "get_vision_oracle"]


def get_preview_quota() -> PreviewQuota:
    """The process-wide preview quota, wired to Redis at startup."""
    return _global_preview_quota()


def get_vision_oracle(request: Request) -> VisionOracle:
    """The shared vision oracle from app state.

    Raises:
        UpstreamOracleError: No oracle configured (no API key).
    """
    oracle = getattr(request.app.state, "vision_oracle", None)
    if oracle is None:
        raise UpstreamOracleError("Vision oracle is not configured")
    return oracle
