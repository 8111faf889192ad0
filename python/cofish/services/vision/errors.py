"""Vision oracle error classification.

Adapters let raw httpx errors bubble up. classify_oracle_error turns them
into a VisionError with a normalized class; the catch pipeline then surfaces
VisionError as UpstreamOracleError (E_ORACLE_FAILURE, 502).

Error classes:
- INVALID_KEY: Authentication failure (401/403)
- RATE_LIMIT: Rate limit exceeded (429)
- TIMEOUT: Request timed out
- PROVIDER_DOWN: 5xx or network failure
- BAD_RESPONSE: 2xx with an unusable body
"""

from enum import Enum

import httpx


class VisionErrorClass(str, Enum):
    INVALID_KEY = "invalid_key"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    PROVIDER_DOWN = "provider_down"
    BAD_RESPONSE = "bad_response"


class VisionError(Exception):
    """Oracle call failed.

    Attributes:
        error_class: The normalized error classification
        message: Human-readable error message
        status_code: Provider HTTP status, when there was one
    """

    def __init__(
        self,
        error_class: VisionErrorClass,
        message: str,
        status_code: int | None = None,
    ):
        self.error_class = error_class
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def classify_oracle_error(exc: Exception) -> VisionError:
    """Map an adapter exception to a VisionError."""
    if isinstance(exc, VisionError):
        return exc

    if isinstance(exc, httpx.TimeoutException):
        return VisionError(VisionErrorClass.TIMEOUT, "Vision oracle timed out")

    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status in (401, 403):
            error_class = VisionErrorClass.INVALID_KEY
        elif status == 429:
            error_class = VisionErrorClass.RATE_LIMIT
        else:
            error_class = VisionErrorClass.PROVIDER_DOWN
        return VisionError(error_class, f"Vision oracle returned HTTP {status}", status)

    if isinstance(exc, httpx.HTTPError):
        return VisionError(VisionErrorClass.PROVIDER_DOWN, "Vision oracle unreachable")

    return VisionError(VisionErrorClass.BAD_RESPONSE, f"Vision oracle failed: {type(exc).__name__}")
