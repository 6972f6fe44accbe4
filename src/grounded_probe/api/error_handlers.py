"""
FastAPI exception handlers for structured error responses.

Every error body has the probe's shape ``{"status": "error", "message": ...}``
and carries the CORS headers, since these handlers may run outside
CORSMiddleware.
"""

import structlog
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from grounded_probe.api.middleware import CORS_HEADERS
from grounded_probe.api.models import ErrorResponse
from grounded_probe.config import ConfigurationError

logger = structlog.get_logger(__name__)


def _error_response(status_code: int, message: str, details: dict | None = None) -> JSONResponse:
    body = ErrorResponse(message=message, details=details)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
        headers=CORS_HEADERS,
    )


async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    """
    Handle missing or invalid configuration.

    Maps to 500; raised before any upstream or store call is made.
    """
    logger.error("Configuration error", error=exc.message, missing=exc.missing)

    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        exc.message,
        {"missing": exc.missing} if exc.missing else None,
    )


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle invalid request bodies.

    Maps to 400 Bad Request (client error).
    """
    errors = exc.errors()
    logger.warning("Invalid request format", errors=errors)

    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        "Request validation failed",
        {"errors": [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors]},
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected errors.

    Maps to 500 Internal Server Error without leaking internals.
    """
    logger.exception("Unexpected error", error_type=type(exc).__name__)

    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred.",
    )


# Exception handler mapping for FastAPI app.add_exception_handler()
EXCEPTION_HANDLERS = {
    ConfigurationError: configuration_error_handler,
    RequestValidationError: request_validation_error_handler,
    Exception: generic_error_handler,
}
