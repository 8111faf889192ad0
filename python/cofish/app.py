"""FastAPI application factory.

Middleware runs in reverse order of registration. RequestIDMiddleware is
added last (add_request_id_middleware) so it wraps everything, auth
rejections included:

    RequestIDMiddleware -> AuthMiddleware -> route

Shared resources live on app.state and are built in the lifespan:
- httpx_client: pooled AsyncClient for the vision oracle
- vision_oracle: OpenAIVisionOracle, or None without OPENAI_API_KEY
- redis_client: backs the daily preview quota (fail open without it)
"""

from contextlib import asynccontextmanager
from typing import Any
from uuid import UUID

import httpx
import redis
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from cofish.api.routes import create_api_router
from cofish.auth.middleware import AuthMiddleware
from cofish.auth.verifier import JwksTokenVerifier, TokenVerifier
from cofish.config import Environment, get_settings
from cofish.db.session import get_session_factory
from cofish.errors import ApiError
from cofish.logging import configure_logging, get_logger
from cofish.middleware.request_id import RequestIDMiddleware
from cofish.responses import (
    api_error_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from cofish.services.bootstrap import ensure_user_record
from cofish.services.preview_quota import PreviewQuota, set_preview_quota
from cofish.services.vision import OpenAIVisionOracle

configure_logging()

logger = get_logger(__name__)


def create_bootstrap_callback():
    """Auth bootstrap that makes sure the user row exists, on its own session."""
    session_factory = get_session_factory()

    def bootstrap(user_id: UUID, claims: dict[str, Any]) -> None:
        db = session_factory()
        try:
            ensure_user_record(
                db,
                user_id,
                email=claims.get("email"),
                display_name=claims.get("name") or claims.get("preferred_username"),
            )
        finally:
            db.close()

    return bootstrap


def create_token_verifier() -> JwksTokenVerifier:
    settings = get_settings()
    if not settings.auth_jwks_url or not settings.normalized_issuer:
        raise ValueError("AUTH_JWKS_URL and AUTH_ISSUER are required to verify tokens")

    return JwksTokenVerifier(
        jwks_url=settings.auth_jwks_url,
        issuer=settings.normalized_issuer,
        audiences=settings.audience_list,
    )


def create_redis_client(redis_url: str | None):
    """Connected Redis client, or None when unset or unreachable."""
    if not redis_url:
        return None
    try:
        client = redis.Redis.from_url(redis_url, decode_responses=True, socket_timeout=5)
        client.ping()
        logger.info("redis_client_initialized")
        return client
    except redis.RedisError as e:
        logger.warning("redis_client_init_failed", error=str(e))
        return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    app.state.httpx_client = httpx.AsyncClient(
        timeout=httpx.Timeout(float(settings.vision_timeout_s), connect=10.0),
        limits=httpx.Limits(max_connections=50, max_keepalive_connections=10),
    )

    app.state.vision_oracle = None
    if settings.openai_api_key:
        app.state.vision_oracle = OpenAIVisionOracle(
            app.state.httpx_client,
            api_key=settings.openai_api_key,
            model=settings.vision_model,
            embedding_model=settings.embedding_model,
            timeout_s=settings.vision_timeout_s,
        )
    logger.info("vision_oracle_initialized", enabled=app.state.vision_oracle is not None)

    redis_client = create_redis_client(settings.redis_url)
    app.state.redis_client = redis_client
    set_preview_quota(PreviewQuota(redis_client, daily_limit=settings.daily_preview_limit))

    yield

    await app.state.httpx_client.aclose()
    if redis_client is not None:
        try:
            redis_client.close()
        except redis.RedisError as e:
            logger.warning("redis_client_close_failed", error=str(e))
    set_preview_quota(None)
    logger.info("app_shutdown_complete")


def create_app(
    skip_auth_middleware: bool = False,
    token_verifier: TokenVerifier | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        skip_auth_middleware: Leave out auth entirely (tests only).
        token_verifier: Verifier to use instead of the JWKS one (tests only).
    """
    settings = get_settings()

    app = FastAPI(
        title="CoFish API",
        description="Points ledger and TargetZone market for the CoFish angling app",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(
        create_api_router(include_test_routes=settings.cofish_env == Environment.TEST)
    )

    if not skip_auth_middleware:
        app.add_middleware(
            AuthMiddleware,
            verifier=token_verifier or create_token_verifier(),
            requires_internal_header=settings.requires_internal_header,
            internal_secret=settings.cofish_internal_secret,
            bootstrap_callback=create_bootstrap_callback(),
        )
        logger.info(
            "auth_middleware_enabled",
            env=settings.cofish_env.value,
            internal_header_required=settings.requires_internal_header,
        )

    return app


def add_request_id_middleware(app: FastAPI, log_requests: bool = True) -> None:
    """Add request-id middleware. Call after all other middleware so it runs first."""
    app.add_middleware(RequestIDMiddleware, log_requests=log_requests)
