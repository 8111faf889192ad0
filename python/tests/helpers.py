"""Test helpers for authentication and common test operations.

Provides:
- Token minting for test authentication
- Header generation for test requests
"""

import time
from uuid import UUID, uuid4

import jwt

from tests.support.test_verifier import MockJwtVerifier, generate_rsa_private_key_pem

DEFAULT_ISSUER = "test-issuer"
DEFAULT_AUDIENCE = "test-audience"
DEFAULT_EXPIRES_IN = 3600


def mint_test_token(
    user_id: UUID | str,
    expires_in: int = DEFAULT_EXPIRES_IN,
    issuer: str = DEFAULT_ISSUER,
    audience: str = DEFAULT_AUDIENCE,
    private_key: bytes | None = None,
    **extra_claims,
) -> str:
    """Mint a JWT signed with the test key (or private_key, if given)."""
    now = int(time.time())
    payload = {
        "sub": str(user_id),
        "iss": issuer,
        "aud": audience,
        "iat": now,
        "exp": now + expires_in,
        **extra_claims,
    }
    return jwt.encode(payload, private_key or MockJwtVerifier.get_private_key(), algorithm="RS256")


def mint_expired_token(user_id: UUID | str) -> str:
    return mint_test_token(user_id, expires_in=-3600)


def mint_token_with_bad_signature(user_id: UUID | str) -> str:
    return mint_test_token(user_id, private_key=generate_rsa_private_key_pem())


def auth_headers(user_id: UUID | str, **token_kwargs) -> dict[str, str]:
    """Headers with a valid bearer token for user_id."""
    return {"Authorization": f"Bearer {mint_test_token(user_id, **token_kwargs)}"}


def create_test_user_id() -> UUID:
    return uuid4()
