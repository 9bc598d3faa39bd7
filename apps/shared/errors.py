"""
Error taxonomy and secure error handling

Every failure an operation can hit is one of the ApiError subclasses below.
Each carries the HTTP status it maps to; the handler registered by
register_error_handlers turns it into a plain-text response. Storage
failures are logged in full server-side and only a sanitized message with
a correlation id reaches the client.
"""

import logging
import uuid
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base class for errors that map directly onto an HTTP response."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class DecodeError(ApiError):
    """The request body is not valid JSON."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Malformed JSON body"


class ValidationError(ApiError):
    """A required field is missing or empty, or a field has the wrong type."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Missing required fields"


class InvalidIdentifier(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid post ID"


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Post not found"


class StorageError(ApiError):
    """Any failure reported by the database or its driver."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Database operation failed"

    def __init__(self, message: Optional[str] = None, error_id: Optional[str] = None):
        super().__init__(message)
        self.error_id = error_id


def log_and_sanitize_error(
    error: Exception,
    context: str,
    user_message: Optional[str] = None
) -> tuple[str, str]:
    """
    Log full error details server-side and return sanitized message for client.

    Args:
        error: The exception that occurred
        context: Description of what operation failed (e.g., "Create post")
        user_message: Optional custom message to show user. If None, uses generic message.

    Returns:
        Tuple of (sanitized_message, error_id) for client response
    """
    # Generate unique error ID for correlation
    error_id = str(uuid.uuid4())[:8]

    logger.error(
        f"{context} failed [{error_id}]: {type(error).__name__}: {str(error)}",
        exc_info=error
    )

    if user_message:
        sanitized = f"{user_message} (Error ID: {error_id})"
    else:
        sanitized = f"{context} failed. Please try again later. (Error ID: {error_id})"

    return sanitized, error_id


def storage_error(error: Exception, context: str) -> StorageError:
    """Wrap a driver/ORM exception into a sanitized StorageError."""
    message, error_id = log_and_sanitize_error(error, context)
    return StorageError(message, error_id=error_id)


def _describe_request_error(exc: RequestValidationError) -> str:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{location}: {err.get('msg')}" if location else err.get("msg"))
    return "Invalid request: " + "; ".join(problems)


def register_error_handlers(app: FastAPI) -> None:
    """Map ApiError (and FastAPI's own request validation) to plain-text responses."""

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        if exc.status_code >= 500:
            logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}")
        return PlainTextResponse(exc.message, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return PlainTextResponse(
            _describe_request_error(exc),
            status_code=status.HTTP_400_BAD_REQUEST,
        )
