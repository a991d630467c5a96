"""Custom exception hierarchy and handlers."""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    status_code = 400
    code = "app_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationException(AppException):
    """Raised on malformed input: time format, rating range, missing fields."""

    status_code = 400
    code = "validation_error"


class NotFoundException(AppException):
    """Raised when entity is not found."""

    status_code = 404
    code = "not_found"


class ForbiddenException(AppException):
    """Raised when role or ownership does not allow the operation."""

    status_code = 403
    code = "forbidden"


class NotAvailableException(AppException):
    """Raised when requested interval is outside tutor availability."""

    status_code = 400
    code = "not_available"


class ConflictException(AppException):
    """Raised when requested interval overlaps an active session."""

    status_code = 400
    code = "conflict"


class InvalidTransitionException(AppException):
    """Raised on an illegal session status change."""

    status_code = 400
    code = "invalid_transition"


class AlreadySubmittedException(AppException):
    """Raised when feedback was already attached to a session."""

    status_code = 400
    code = "already_submitted"


def _error_body(code: str, message: str) -> dict:
    return {"error": {"code": code, "message": message}}


async def app_exception_handler(_: Request, exc: AppException) -> JSONResponse:
    """Handle custom domain exceptions."""
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.code, exc.message))


async def http_exception_handler(_: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTP exceptions in unified shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body("http_error", str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_exception_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    """Render body/query validation failures as validation errors."""
    details = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', 'invalid')}"
        for error in exc.errors()
    )
    return JSONResponse(
        status_code=ValidationException.status_code,
        content=_error_body(ValidationException.code, details or "Invalid request"),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content=_error_body("internal_error", "Internal server error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
