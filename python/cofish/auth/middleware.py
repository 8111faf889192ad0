"""Authentication middleware.

Provides:
- AuthMiddleware: bearer token and internal header verification on every
  non-public path
- get_viewer: dependency exposing the authenticated viewer to routes
"""

import hmac
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from fastapi import Depends, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from cofish.auth.verifier import TokenVerifier, validate_subject
from cofish.errors import ApiError, ApiErrorCode
from cofish.logging import get_logger, get_request_id, set_request_context
from cofish.responses import error_response

logger = get_logger(__name__)

AUTHORIZATION_HEADER = "authorization"
INTERNAL_HEADER = "x-cofish-internal"

PUBLIC_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}

# (user_id, claims) -> None; makes sure the user row exists
BootstrapCallback = Callable[[UUID, dict[str, Any]], None]


@dataclass
class Viewer:
    """Authenticated viewer identity (the token's sub)."""

    user_id: UUID


class AuthMiddleware(BaseHTTPMiddleware):
    """Authenticates every request outside PUBLIC_PATHS.

    Order of checks:
    1. Internal header (staging/prod only)
    2. Bearer token present and well-formed
    3. Token verified by the TokenVerifier
    4. User row bootstrapped
    5. Viewer attached to request.state
    """

    def __init__(
        self,
        app: ASGIApp,
        verifier: TokenVerifier,
        requires_internal_header: bool = False,
        internal_secret: str | None = None,
        bootstrap_callback: BootstrapCallback | None = None,
    ):
        super().__init__(app)
        self.verifier = verifier
        self.requires_internal_header = requires_internal_header
        self.internal_secret = internal_secret
        self.bootstrap_callback = bootstrap_callback

    async def dispatch(self, request: Request, call_next) -> JSONResponse:
        if request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        if self.requires_internal_header:
            rejection = self._verify_internal_header(request)
            if rejection:
                return rejection

        token, rejection = self._extract_bearer_token(request)
        if rejection:
            return rejection

        try:
            claims = self.verifier.verify(token)
            user_id = validate_subject(claims)
        except ApiError as e:
            return self._error_json_response(e.code, e.message, e.status_code)

        if self.bootstrap_callback:
            try:
                self.bootstrap_callback(user_id, claims)
            except Exception:
                logger.exception("user_bootstrap_failed", user_id=str(user_id))
                return self._error_json_response(
                    ApiErrorCode.E_INTERNAL, "Internal server error", 500
                )

        request.state.viewer = Viewer(user_id=user_id)
        set_request_context(get_request_id(), str(user_id))

        return await call_next(request)

    def _verify_internal_header(self, request: Request) -> JSONResponse | None:
        header_value = request.headers.get(INTERNAL_HEADER)

        if header_value is None:
            logger.warning(
                "auth_failure", reason="internal_header_missing", request_path=request.url.path
            )
            return self._error_json_response(
                ApiErrorCode.E_INTERNAL_ONLY, "Internal API access required", 403
            )

        if not self.internal_secret:
            logger.error("internal_secret_not_configured")
            return self._error_json_response(ApiErrorCode.E_INTERNAL, "Internal server error", 500)

        if not hmac.compare_digest(header_value.encode(), self.internal_secret.encode()):
            logger.warning(
                "auth_failure", reason="internal_header_mismatch", request_path=request.url.path
            )
            return self._error_json_response(
                ApiErrorCode.E_INTERNAL_ONLY, "Internal API access required", 403
            )

        return None

    def _extract_bearer_token(self, request: Request) -> tuple[str, JSONResponse | None]:
        auth_header = request.headers.get(AUTHORIZATION_HEADER)

        if not auth_header:
            logger.warning("auth_failure", reason="missing_header", request_path=request.url.path)
            return "", self._error_json_response(
                ApiErrorCode.E_UNAUTHENTICATED, "Authentication required", 401
            )

        token = auth_header[7:].strip() if auth_header.lower().startswith("bearer ") else ""
        if not token:
            logger.warning(
                "auth_failure", reason="invalid_header_format", request_path=request.url.path
            )
            return "", self._error_json_response(
                ApiErrorCode.E_UNAUTHENTICATED, "Invalid authorization header format", 401
            )

        return token, None

    def _error_json_response(
        self, code: ApiErrorCode, message: str, status_code: int
    ) -> JSONResponse:
        return JSONResponse(status_code=status_code, content=error_response(code, message))


def get_viewer(request: Request) -> Viewer:
    """FastAPI dependency for the authenticated viewer.

    Raises:
        ApiError(E_UNAUTHENTICATED): No viewer on the request.
    """
    viewer = getattr(request.state, "viewer", None)
    if viewer is None:
        raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Authentication required")
    return viewer


ViewerDep = Depends(get_viewer)
