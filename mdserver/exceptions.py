"""
Custom exception hierarchy for mdserver.

Provides structured error handling with proper HTTP status codes and error codes.
"""

import logging
from typing import Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class MarkdownServerException(Exception):
    """Base exception for all server errors"""
    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class SecurityException(MarkdownServerException):
    """Security-related errors"""
    status_code = 403
    error_code = "SECURITY_ERROR"


class PathTraversalException(SecurityException):
    """Path escapes the content root"""
    error_code = "PATH_TRAVERSAL"


class ValidationException(MarkdownServerException):
    """Input validation errors"""
    status_code = 400
    error_code = "VALIDATION_ERROR"


class InvalidQueryException(ValidationException):
    """Search query too short or malformed"""
    error_code = "INVALID_QUERY"


class FileSystemException(MarkdownServerException):
    """Filesystem access errors"""
    status_code = 500
    error_code = "FILESYSTEM_ERROR"


class DocumentNotFoundException(FileSystemException):
    """File or directory does not exist"""
    status_code = 404
    error_code = "NOT_FOUND"


class WatcherException(MarkdownServerException):
    """File watcher errors"""
    status_code = 500
    error_code = "WATCHER_ERROR"


def error_response(status_code: int, message: str, code: str, details: Optional[dict] = None) -> JSONResponse:
    """Build the standard failure envelope."""
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": message,
            "code": code,
            "details": details or {},
        },
    )


# Global exception handlers
async def markdown_server_exception_handler(
    request: Request,
    exc: MarkdownServerException
) -> JSONResponse:
    """
    Global exception handler for MarkdownServerException and its subclasses.

    Returns a JSON response with success flag, message, error code and details.
    """
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code} on {request.url.path}: {exc.message}", exc_info=exc.__cause__)
    return error_response(exc.status_code, exc.message, exc.error_code, exc.details)


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Map request validation failures to a 400 envelope."""
    return error_response(
        400,
        "Invalid request parameters",
        ValidationException.error_code,
        {"errors": [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
            for err in exc.errors()
        ]},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler for anything not covered above."""
    logger.exception(f"Unhandled error on {request.url.path}: {exc}")
    return error_response(500, "Internal server error", MarkdownServerException.error_code)
