"""Authentication.

- JwksTokenVerifier checks identity-provider JWTs against a JWKS endpoint
- AuthMiddleware authenticates requests and bootstraps the user row
- get_viewer exposes the authenticated Viewer to routes

Test verifiers live in tests/support/test_verifier.py.
"""

from cofish.auth.middleware import AuthMiddleware, Viewer, get_viewer
from cofish.auth.verifier import JwksTokenVerifier, TokenVerifier

__all__ = [
    "AuthMiddleware",
    "JwksTokenVerifier",
    "TokenVerifier",
    "Viewer",
    "get_viewer",
]
