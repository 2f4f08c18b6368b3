"""Error taxonomy for rate acquisition plus FastAPI JSON error handlers.

Hard failures are exceptions rooted at ``RateFetchError``. Soft conditions
(a provider in the fiat chain failing, a zero-priced coin, incomplete coverage)
are carried as warnings on result objects instead.
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger("fxcache.errors")


class RateFetchError(Exception):
    """Base class for every failure raised by the fetch pipeline."""


class TransportError(RateFetchError):
    """Network unreachable, timeout, or non-success HTTP status."""


class MalformedResponse(RateFetchError):
    """Payload does not match the provider's known schema."""


class UnsupportedProvider(RateFetchError, ValueError):
    """Provider identifier is not one of the known providers."""


class NoProviderReachable(RateFetchError):
    """Fiat chain had no provider to try."""


def http_error_handler(request: Request, exc):  # type: ignore
    detail = exc.detail
    if exc.status_code == 404 and detail == "Not Found":
        detail = f"No route for {request.method} {request.url.path}"
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "not_found" if exc.status_code == 404 else "http_error",
            "detail": detail,
        },
    )


def validation_error_handler(request: Request, exc: RequestValidationError):  # type: ignore
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "detail": exc.errors(),
        },
    )


def server_error_handler(request: Request, exc: Exception):  # type: ignore
    logger.exception("unhandled exception")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "detail": "An unexpected error occurred.",
        },
    )
