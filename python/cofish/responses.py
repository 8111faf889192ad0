"""Response envelope helpers and exception handlers.

Every response from the API is wrapped:
- Success: { "data": ... }
- Error: { "error": { "code": "E_...", "message": "...", "request_id": "..." } }

Handlers here are registered by cofish.app.create_app.
"""

from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from cofish.errors import ApiError, ApiErrorCode
from cofish.logging import get_logger, get_request_id

logger = get_logger(__name__)

_STATUS_TO_CODE = {
    400: ApiErrorCode.E_INVALID_REQUEST,
    401: ApiErrorCode.E_UNAUTHENTICATED,
    403: ApiErrorCode.E_FORBIDDEN,
    404: ApiErrorCode.E_NOT_FOUND,
    405: ApiErrorCode.E_INVALID_REQUEST,
    422: ApiErrorCode.E_INVALID_REQUEST,
    429: ApiErrorCode.E_PREVIEW_LIMIT_REACHED,
}


def success_response(data: Any) -> dict[str, Any]:
    """Wrap a payload in the success envelope.

    Routes pass already-dumped data (model.model_dump(mode="json")).
    """
    return {"data": data}


def error_response(
    code: ApiErrorCode, message: str, request_id: str | None = None
) -> dict[str, Any]:
    """Build the error envelope.

    The request_id is taken from the logging context when not passed in.
    """
    if request_id is None:
        request_id = get_request_id()

    error = {"code": code.value, "message": message}
    if request_id:
        error["request_id"] = request_id

    return {"error": error}


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Render an ApiError raised by a service function."""
    if exc.status_code >= 500:
        logger.error("api_error", code=exc.code.value, message=exc.message)
    else:
        logger.info("api_error", code=exc.code.value, status=exc.status_code)

    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.code, exc.message),
    )


async def http_exception_handler(request: Request, exc: Any) -> JSONResponse:
    """Render Starlette HTTPExceptions (unknown routes, bad methods)."""
    code = _STATUS_TO_CODE.get(exc.status_code, ApiErrorCode.E_INTERNAL)
    message = str(exc.detail) if exc.detail else "An error occurred"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(code, message),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render body/query validation failures as E_INVALID_REQUEST (400)."""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        if location:
            message = f"Invalid request: {location}: {first.get('msg', 'invalid value')}"

    return JSONResponse(
        status_code=400,
        content=error_response(ApiErrorCode.E_INVALID_REQUEST, message),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render anything else as E_INTERNAL without leaking details."""
    logger.exception("unhandled_exception", error_type=type(exc).__name__)

    return JSONResponse(
        status_code=500,
        content=error_response(ApiErrorCode.E_INTERNAL, "Internal server error"),
    )
