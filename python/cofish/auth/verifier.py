"""Bearer token verification.

Provides:
- TokenVerifier: Protocol for token verification
- JwksTokenVerifier: Verifies identity-provider JWTs against a JWKS endpoint

Test verifiers live in tests/support/test_verifier.py.
"""

import threading
from typing import Any, Protocol
from uuid import UUID

import jwt
from jwt import PyJWKClient
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    InvalidAudienceError,
    InvalidIssuerError,
    InvalidSignatureError,
    InvalidTokenError,
    PyJWKClientError,
)

from cofish.errors import ApiError, ApiErrorCode
from cofish.logging import get_logger

logger = get_logger(__name__)

CLOCK_SKEW_SECONDS = 60
SUPPORTED_ALGORITHMS = ["RS256", "ES256"]


class TokenVerifier(Protocol):
    def verify(self, token: str) -> dict[str, Any]:
        """Verify token and return decoded claims.

        Raises:
            ApiError(E_UNAUTHENTICATED): Token is invalid, expired, or malformed.
            ApiError(E_AUTH_UNAVAILABLE): The key set could not be fetched.
        """
        ...


class JwksTokenVerifier:
    """Verifies signature, exp (with skew), iss, aud and a UUID sub."""

    def __init__(self, jwks_url: str, issuer: str, audiences: list[str], cache_ttl: int = 3600):
        self.jwks_url = jwks_url
        self.issuer = issuer.rstrip("/")
        self.audiences = audiences
        self.cache_ttl = cache_ttl

        self._jwks_client: PyJWKClient | None = None
        self._jwks_lock = threading.Lock()

    def _new_client(self) -> PyJWKClient:
        return PyJWKClient(self.jwks_url, cache_keys=True, lifespan=self.cache_ttl)

    def _get_jwks_client(self) -> PyJWKClient:
        with self._jwks_lock:
            if self._jwks_client is None:
                self._jwks_client = self._new_client()
            return self._jwks_client

    def _refresh_jwks(self) -> PyJWKClient:
        with self._jwks_lock:
            self._jwks_client = self._new_client()
            return self._jwks_client

    def verify(self, token: str) -> dict[str, Any]:
        try:
            signing_key = self._get_signing_key(token)
        except PyJWKClientError as e:
            logger.warning("auth_failure", reason="jwks_unavailable", error=str(e))
            raise ApiError(
                ApiErrorCode.E_AUTH_UNAVAILABLE, "Authentication service unavailable"
            ) from e

        try:
            payload = jwt.decode(
                token,
                signing_key.key,
                algorithms=SUPPORTED_ALGORITHMS,
                audience=self.audiences,
                issuer=self.issuer,
                leeway=CLOCK_SKEW_SECONDS,
                options={"require": ["exp", "iss", "sub"], "verify_aud": True},
            )
        except ExpiredSignatureError as e:
            logger.warning("auth_failure", reason="expired_token")
            raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Token expired") from e
        except InvalidSignatureError as e:
            logger.warning("auth_failure", reason="invalid_signature")
            raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Invalid token signature") from e
        except InvalidIssuerError as e:
            logger.warning("auth_failure", reason="invalid_issuer")
            raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Invalid token issuer") from e
        except InvalidAudienceError as e:
            logger.warning("auth_failure", reason="invalid_audience")
            raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Invalid token audience") from e
        except DecodeError as e:
            logger.warning("auth_failure", reason="decode_error", error=str(e))
            raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Invalid token format") from e
        except InvalidTokenError as e:
            logger.warning("auth_failure", reason="invalid_token", error=str(e))
            raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Invalid token") from e

        validate_subject(payload)
        return payload

    def _get_signing_key(self, token: str) -> Any:
        """Signing key for the token, refetching the key set once on a kid miss."""
        client = self._get_jwks_client()
        try:
            return client.get_signing_key_from_jwt(token)
        except PyJWKClientError as e:
            if "Unable to find" not in str(e) and "kid" not in str(e).lower():
                raise

            logger.info("jwks_refresh", reason="kid_miss")
            client = self._refresh_jwks()
            try:
                return client.get_signing_key_from_jwt(token)
            except PyJWKClientError as retry_e:
                logger.warning("auth_failure", reason="kid_not_found")
                raise ApiError(
                    ApiErrorCode.E_UNAUTHENTICATED, "Invalid token: signing key not found"
                ) from retry_e


def validate_subject(claims: dict[str, Any]) -> UUID:
    """The sub claim as a UUID (user ids are UUIDs)."""
    sub = claims.get("sub")
    if not sub:
        logger.warning("auth_failure", reason="missing_sub")
        raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Invalid token: missing sub")
    try:
        return UUID(sub)
    except (ValueError, TypeError) as e:
        logger.warning("auth_failure", reason="invalid_sub")
        raise ApiError(
            ApiErrorCode.E_UNAUTHENTICATED, "Invalid token: sub is not a valid UUID"
        ) from e
