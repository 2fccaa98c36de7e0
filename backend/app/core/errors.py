"""
Request-level error taxonomy for the Tubely upload backend.

Every failure in the upload flows is raised as one of the exceptions below and
handled once, at the request boundary, where it is turned into an HTTP status
code and a JSON error envelope:

    {"error": "bad_request", "message": "Invalid ID", "status_code": 400}

No step of a flow retries; each request fails independently.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


logger = logging.getLogger(__name__)


class TubelyError(Exception):
    """Base exception carrying an HTTP status and a client-safe message."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "internal_error"
    headers: dict[str, str] | None = None

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequestError(TubelyError):
    """Malformed input, wrong content type or missing form field."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "bad_request"


class UploadTooLargeError(BadRequestError):
    """The request body exceeded the configured upload bound."""

    status_code = status.HTTP_413_CONTENT_TOO_LARGE
    error = "upload_too_large"


class UnauthenticatedError(TubelyError):
    """Missing, malformed, invalid or expired bearer token."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error = "unauthenticated"
    headers = {"WWW-Authenticate": "Bearer"}


class ForbiddenError(TubelyError):
    """Authenticated caller does not own the target record."""

    status_code = status.HTTP_403_FORBIDDEN
    error = "forbidden"


class NotFoundError(TubelyError):
    """Unknown record."""

    status_code = status.HTTP_404_NOT_FOUND
    error = "not_found"


class ProcessingError(TubelyError):
    """An external media tool failed or its output failed an integrity check."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "processing_error"


class StorageError(TubelyError):
    """Uploading to (or reading from) object storage failed."""

    status_code = status.HTTP_502_BAD_GATEWAY
    error = "storage_error"


class PersistenceError(TubelyError):
    """Writing the metadata record failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "persistence_error"


def error_body(error: str, message: str, status_code: int) -> dict[str, object]:
    return {"error": error, "message": message, "status_code": status_code}


async def tubely_error_handler(request: Request, exc: TubelyError) -> JSONResponse:
    """Translate a TubelyError into the JSON error envelope."""
    log_level = logging.WARNING if exc.status_code < 500 else logging.ERROR
    logger.log(
        log_level,
        "%s %s failed: %s (%s)",
        request.method,
        request.url.path,
        exc.message,
        exc.error,
        exc_info=exc.__cause__ if exc.status_code >= 500 and exc.__cause__ else None,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.error, exc.message, exc.status_code),
        headers=exc.headers,
    )


async def not_found_handler(request: Request, _exc: Exception) -> JSONResponse:
    """Consistent JSON 404 for unknown paths."""
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=error_body(
            "not_found",
            f"The requested path '{request.url.path}' was not found",
            status.HTTP_404_NOT_FOUND,
        ),
    )


async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all handler for unexpected exceptions.

    Logs the error and returns a generic message to avoid exposing internal
    details to clients.
    """
    logger.error(
        "Internal server error on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(
            "internal_error",
            "An unexpected error occurred. Please try again later.",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TubelyError, tubely_error_handler)
    app.add_exception_handler(404, not_found_handler)
    app.add_exception_handler(Exception, internal_error_handler)
