"""
Custom HTTP exceptions, notification pipeline errors and global exception handlers.
All application-level errors are defined here for consistency.
"""
from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


# ── Custom exception classes ──────────────────────────────────────────────────

class AirwavesException(Exception):
    """Base exception for all HTTP-facing Airwaves errors."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        self.error_code = error_code or "AIRWAVES_ERROR"
        super().__init__(detail)


class NotFoundException(AirwavesException):
    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        detail = f"{resource} not found"
        if resource_id:
            detail = f"{resource} with id '{resource_id}' not found"
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code="NOT_FOUND",
        )


class UnauthorizedException(AirwavesException):
    def __init__(self, detail: str = "Authentication required") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="UNAUTHORIZED",
        )


class ForbiddenException(AirwavesException):
    def __init__(self, detail: str = "You do not have permission to perform this action") -> None:
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code="FORBIDDEN",
        )


class ConflictException(AirwavesException):
    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code="CONFLICT",
        )


class InvalidTokenException(AirwavesException):
    def __init__(self, detail: str = "Invalid or expired token") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="INVALID_TOKEN",
        )


# ── Notification pipeline errors ──────────────────────────────────────────────

class NotificationError(Exception):
    """Base class for errors raised by the notification pipeline."""


class BulkLoadError(NotificationError):
    """The initial page of notifications could not be fetched."""

    def __init__(self, recipient_id: str, reason: str) -> None:
        self.recipient_id = recipient_id
        self.reason = reason
        super().__init__(f"Could not load notifications for {recipient_id}: {reason}")


class SubscriptionChannelError(NotificationError):
    """The realtime channel reported an error or timed out."""

    def __init__(self, status: str, reason: str | None = None) -> None:
        self.status = status
        self.reason = reason
        message = f"Notification channel {status}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


# ── Exception handlers ────────────────────────────────────────────────────────

def _error_response(status_code: int, detail: str, error_code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error_code,
            "detail": detail,
        },
    )


async def airwaves_exception_handler(
    request: Request, exc: AirwavesException
) -> JSONResponse:
    return _error_response(exc.status_code, exc.detail, exc.error_code)


async def bulk_load_exception_handler(
    request: Request, exc: BulkLoadError
) -> JSONResponse:
    return _error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Notifications are temporarily unavailable",
        "NOTIFICATIONS_UNAVAILABLE",
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = []
    for error in exc.errors():
        field = " -> ".join(str(loc) for loc in error["loc"])
        errors.append({"field": field, "message": error["msg"]})
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "VALIDATION_ERROR",
            "detail": "Request validation failed",
            "errors": errors,
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    return _error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An unexpected internal server error occurred",
        error_code="INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI application."""
    app.add_exception_handler(AirwavesException, airwaves_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(BulkLoadError, bulk_load_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
