"""API error definitions.

All API errors are defined here with their corresponding HTTP status codes.
Service functions raise these; the FastAPI handlers in cofish.responses turn
them into the error envelope.
"""

from enum import Enum


class ApiErrorCode(str, Enum):
    """Standardized error codes for the API.

    Format: E_CATEGORY_NAME
    """

    # Authentication errors (401)
    E_UNAUTHENTICATED = "E_UNAUTHENTICATED"

    # Authorization errors (403)
    E_FORBIDDEN = "E_FORBIDDEN"
    E_INTERNAL_ONLY = "E_INTERNAL_ONLY"

    # Not found errors (404)
    E_NOT_FOUND = "E_NOT_FOUND"
    E_USER_NOT_FOUND = "E_USER_NOT_FOUND"
    E_CATCH_NOT_FOUND = "E_CATCH_NOT_FOUND"
    E_PURCHASE_NOT_FOUND = "E_PURCHASE_NOT_FOUND"

    # Validation errors (400)
    E_INVALID_REQUEST = "E_INVALID_REQUEST"

    # State conflicts (409)
    E_INSUFFICIENT_BALANCE = "E_INSUFFICIENT_BALANCE"
    E_CONCURRENCY_CONFLICT = "E_CONCURRENCY_CONFLICT"
    E_CATCH_NOT_VERIFIED = "E_CATCH_NOT_VERIFIED"
    E_CATCH_ALREADY_AWARDED = "E_CATCH_ALREADY_AWARDED"
    E_CATCH_INVALID_STATE = "E_CATCH_INVALID_STATE"

    # Rationing (429)
    E_PREVIEW_LIMIT_REACHED = "E_PREVIEW_LIMIT_REACHED"

    # Server / upstream errors
    E_ORACLE_FAILURE = "E_ORACLE_FAILURE"  # 502
    E_AUTH_UNAVAILABLE = "E_AUTH_UNAVAILABLE"  # 503
    E_STORE_FAILURE = "E_STORE_FAILURE"  # 500
    E_INTERNAL = "E_INTERNAL"  # 500


# Error code to HTTP status mapping
ERROR_CODE_TO_STATUS: dict[ApiErrorCode, int] = {
    ApiErrorCode.E_UNAUTHENTICATED: 401,
    ApiErrorCode.E_FORBIDDEN: 403,
    ApiErrorCode.E_INTERNAL_ONLY: 403,
    ApiErrorCode.E_NOT_FOUND: 404,
    ApiErrorCode.E_USER_NOT_FOUND: 404,
    ApiErrorCode.E_CATCH_NOT_FOUND: 404,
    ApiErrorCode.E_PURCHASE_NOT_FOUND: 404,
    ApiErrorCode.E_INVALID_REQUEST: 400,
    ApiErrorCode.E_INSUFFICIENT_BALANCE: 409,
    ApiErrorCode.E_CONCURRENCY_CONFLICT: 409,
    ApiErrorCode.E_CATCH_NOT_VERIFIED: 409,
    ApiErrorCode.E_CATCH_ALREADY_AWARDED: 409,
    ApiErrorCode.E_CATCH_INVALID_STATE: 409,
    ApiErrorCode.E_PREVIEW_LIMIT_REACHED: 429,
    ApiErrorCode.E_ORACLE_FAILURE: 502,
    ApiErrorCode.E_AUTH_UNAVAILABLE: 503,
    ApiErrorCode.E_STORE_FAILURE: 500,
    ApiErrorCode.E_INTERNAL: 500,
}


class ApiError(Exception):
    """Base exception for API errors.

    Attributes:
        code: The error code enum value
        message: Human-readable error message
        status_code: HTTP status code (derived from code)
    """

    def __init__(self, code: ApiErrorCode, message: str):
        self.code = code
        self.message = message
        self.status_code = ERROR_CODE_TO_STATUS.get(code, 500)
        super().__init__(message)


class NotAuthenticatedError(ApiError):
    """No identity could be established for the caller."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(ApiErrorCode.E_UNAUTHENTICATED, message)


class NotFoundError(ApiError):
    """Resource not found error."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_NOT_FOUND, message: str = "Not found"):
        super().__init__(code, message)


class ForbiddenError(ApiError):
    """Authorization failure error."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_FORBIDDEN, message: str = "Forbidden"):
        super().__init__(code, message)


class InvalidRequestError(ApiError):
    """Invalid request error (missing location, malformed embedding, ...)."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_INVALID_REQUEST, message: str = "Invalid request"
    ):
        super().__init__(code, message)


class InsufficientBalanceError(ApiError):
    """The user cannot afford the requested debit."""

    def __init__(self, balance: int, required: int):
        self.balance = balance
        self.required = required
        super().__init__(
            ApiErrorCode.E_INSUFFICIENT_BALANCE,
            f"Not enough points. You have {balance}, need {required}.",
        )


class ConcurrencyConflictError(ApiError):
    """A versioned write lost against a concurrent writer."""

    def __init__(self, message: str = "Record was modified concurrently"):
        super().__init__(ApiErrorCode.E_CONCURRENCY_CONFLICT, message)


class CatchNotVerifiedError(ApiError):
    def __init__(self, message: str = "Catch is not verified"):
        super().__init__(ApiErrorCode.E_CATCH_NOT_VERIFIED, message)


class CatchAlreadyAwardedError(ApiError):
    def __init__(self, message: str = "Catch has already been awarded"):
        super().__init__(ApiErrorCode.E_CATCH_ALREADY_AWARDED, message)


class CatchInvalidStateError(ApiError):
    """Analysis was submitted for a catch that is no longer pending."""

    def __init__(self, message: str = "Catch is not pending verification"):
        super().__init__(ApiErrorCode.E_CATCH_INVALID_STATE, message)


class UpstreamOracleError(ApiError):
    """The vision / embedding oracle failed or returned unusable output."""

    def __init__(self, message: str = "Vision analysis failed"):
        super().__init__(ApiErrorCode.E_ORACLE_FAILURE, message)


class StoreError(ApiError):
    """Generic record store failure."""

    def __init__(self, message: str = "Record store failure"):
        super().__init__(ApiErrorCode.E_STORE_FAILURE, message)
