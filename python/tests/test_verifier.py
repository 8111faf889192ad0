"""Unit tests for JwksTokenVerifier.

The JWKS endpoint is never contacted: the PyJWKClient is replaced with a
MagicMock returning the test public key.
"""

import time
from unittest.mock import MagicMock, patch
from uuid import uuid4

import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.exceptions import PyJWKClientError

from cofish.auth.verifier import JwksTokenVerifier, validate_subject
from cofish.errors import ApiError, ApiErrorCode

ISSUER = "https://cognito-idp.us-east-1.amazonaws.com/us-east-1_TEST"
AUDIENCE = "cofish-app"


@pytest.fixture(scope="module")
def rsa_keypair():
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return private_key, private_key.public_key()


@pytest.fixture
def verifier():
    return JwksTokenVerifier(
        jwks_url=f"{ISSUER}/.well-known/jwks.json",
        issuer=ISSUER + "/",
        audiences=[AUDIENCE],
    )


def _mint(private_key, sub: str | None = None, **overrides) -> str:
    now = int(time.time())
    payload = {
        "sub": sub or str(uuid4()),
        "iss": ISSUER,
        "aud": AUDIENCE,
        "iat": now,
        "exp": now + 3600,
        **overrides,
    }
    payload = {k: v for k, v in payload.items() if v is not None}
    private_bytes = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return jwt.encode(payload, private_bytes, algorithm="RS256", headers={"kid": "test-key-id"})


def _jwks_client(public_key) -> MagicMock:
    client = MagicMock()
    client.get_signing_key_from_jwt.return_value = MagicMock(key=public_key)
    return client


class TestJwksTokenVerifier:
    def test_valid_token(self, verifier, rsa_keypair):
        private_key, public_key = rsa_keypair
        user_id = str(uuid4())

        with patch.object(verifier, "_get_jwks_client", return_value=_jwks_client(public_key)):
            claims = verifier.verify(_mint(private_key, user_id))

        assert claims["sub"] == user_id
        assert verifier.issuer == ISSUER

    def test_expiry_within_clock_skew_accepted(self, verifier, rsa_keypair):
        private_key, public_key = rsa_keypair
        token = _mint(private_key, exp=int(time.time()) - 30)

        with patch.object(verifier, "_get_jwks_client", return_value=_jwks_client(public_key)):
            verifier.verify(token)

    @pytest.mark.parametrize(
        ("overrides", "fragment"),
        [
            ({"exp": int(time.time()) - 600}, "expired"),
            ({"iss": "https://evil.example.com"}, "issuer"),
            ({"aud": "someone-else"}, "audience"),
            ({"sub": "not-a-uuid"}, "uuid"),
        ],
    )
    def test_rejections(self, verifier, rsa_keypair, overrides, fragment):
        private_key, public_key = rsa_keypair
        token = _mint(private_key, **overrides)

        with patch.object(verifier, "_get_jwks_client", return_value=_jwks_client(public_key)):
            with pytest.raises(ApiError) as exc:
                verifier.verify(token)

        assert exc.value.code == ApiErrorCode.E_UNAUTHENTICATED
        assert fragment in exc.value.message.lower()

    def test_wrong_key(self, verifier, rsa_keypair):
        _, public_key = rsa_keypair
        other_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)

        with patch.object(verifier, "_get_jwks_client", return_value=_jwks_client(public_key)):
            with pytest.raises(ApiError) as exc:
                verifier.verify(_mint(other_key))

        assert exc.value.code == ApiErrorCode.E_UNAUTHENTICATED

    def test_jwks_fetch_failure_is_unavailable(self, verifier, rsa_keypair):
        client = MagicMock()
        client.get_signing_key_from_jwt.side_effect = PyJWKClientError(
            "Fail to fetch data from the url"
        )

        with patch.object(verifier, "_get_jwks_client", return_value=client):
            with pytest.raises(ApiError) as exc:
                verifier.verify(_mint(rsa_keypair[0]))

        assert exc.value.code == ApiErrorCode.E_AUTH_UNAVAILABLE

    def test_kid_miss_refreshes_once(self, verifier, rsa_keypair):
        private_key, public_key = rsa_keypair
        stale = MagicMock()
        stale.get_signing_key_from_jwt.side_effect = PyJWKClientError(
            'Unable to find a signing key that matches: "test-key-id"'
        )
        fresh = _jwks_client(public_key)

        with (
            patch.object(verifier, "_get_jwks_client", return_value=stale),
            patch.object(verifier, "_refresh_jwks", return_value=fresh) as refresh,
        ):
            claims = verifier.verify(_mint(private_key))

        refresh.assert_called_once()
        assert "sub" in claims


class TestValidateSubject:
    def test_uuid_sub(self):
        user_id = uuid4()
        assert validate_subject({"sub": str(user_id)}) == user_id

    @pytest.mark.parametrize("claims", [{}, {"sub": ""}, {"sub": "angler-42"}])
    def test_bad_sub(self, claims):
        with pytest.raises(ApiError) as exc:
            validate_subject(claims)
        assert exc.value.code == ApiErrorCode.E_UNAUTHENTICATED
