from __future__ import annotations

"""
Exception handlers for FastAPI applications using the quota guard.

This module translates quotaguard exceptions into HTTP responses.
"""

from fastapi import Request, FastAPI
from fastapi.responses import JSONResponse
from starlette import status
from structlog import get_logger

from quotaguard.core.exceptions import (
    PlanLookupError,
    QuotaGuardError,
    RateLimitExceededError,
    StoreError,
)

__all__ = [
    "rate_limit_exceeded_error_handler",
    "dependency_unavailable_handler",
    "quotaguard_error_handler",
    "register_exception_handlers",
]

logger = get_logger(__name__)


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def rate_limit_exceeded_error_handler(request: Request, exc: RateLimitExceededError) -> JSONResponse:
    """Handles `RateLimitExceededError`, returning a `429 Too Many Requests`.

    Args:
        request: The incoming `Request` object.
        exc: The `RateLimitExceededError` instance.

    Returns:
        A `JSONResponse` with a 429 status code and error detail.
    """
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"detail": exc.message, "code": exc.code},
        headers={"Retry-After": "1"},
    )


async def dependency_unavailable_handler(request: Request, exc: QuotaGuardError) -> JSONResponse:
    """Handles `StoreError` and `PlanLookupError`, returning a `503`.

    The quota could not be evaluated, so the request is refused rather than
    let through unmetered.
    """
    logger.error(
        "quota_check_unavailable",
        error=exc.code,
        error_message=str(exc),
        client_ip=_client_ip(request),
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Quota service temporarily unavailable.", "code": exc.code},
    )


async def quotaguard_error_handler(request: Request, exc: QuotaGuardError) -> JSONResponse:
    """Handles any other `QuotaGuardError` as a `500 Internal Server Error`."""
    logger.error(
        "quotaguard_error",
        error=exc.code,
        error_message=str(exc),
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": exc.message, "code": exc.code},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Registers the quotaguard exception handlers with a FastAPI application.

    More specific exceptions are registered before the base class.

    Args:
        app: The `FastAPI` application instance.
    """
    app.add_exception_handler(RateLimitExceededError, rate_limit_exceeded_error_handler)
    app.add_exception_handler(StoreError, dependency_unavailable_handler)
    app.add_exception_handler(PlanLookupError, dependency_unavailable_handler)
    app.add_exception_handler(QuotaGuardError, quotaguard_error_handler)
