"""Middleware and exception handlers for the API."""

import time

from fastapi import Request
from fastapi.responses import JSONResponse

from syncsearch.core.exceptions import (
    ConfigurationError,
    DuplicateTagError,
    FetchError,
    GenerationError,
    NotFoundException,
    RateLimitedError,
    SourceUnavailableError,
    SyncInProgressError,
    SyncSearchException,
)
from syncsearch.core.logging import logger

_STATUS_CODES: list[tuple[type, int]] = [
    (NotFoundException, 404),
    (ConfigurationError, 400),
    (DuplicateTagError, 409),
    (SyncInProgressError, 409),
    (SourceUnavailableError, 502),
    (FetchError, 502),
    (GenerationError, 502),
    (RateLimitedError, 502),
]


async def log_requests(request: Request, call_next):
    """Log each request with its status and duration."""
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.with_context(method=request.method, path=request.url.path).info(
        f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.0f}ms)"
    )
    return response


def status_code_for(exc: SyncSearchException) -> int:
    """HTTP status for a SyncSearch exception; unknown types map to 500."""
    for exc_type, status_code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return status_code
    return 500


async def syncsearch_exception_handler(request: Request, exc: SyncSearchException) -> JSONResponse:
    """Generic exception handler for all SyncSearchException types.

    Args:
    ----
        request (Request): The incoming request that triggered the exception.
        exc (SyncSearchException): The exception object that was raised.

    Returns:
    -------
        JSONResponse: HTTP response with appropriate status code and error details.

    """
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"Unhandled {type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Bad input detected below the validation layer."""
    return JSONResponse(status_code=422, content={"detail": str(exc)})
