"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors raised by services. The credential
core raises CredentialError instead; credential_error_to_app_error()
translates those at the HTTP edge. Messages for invalid, consumed and
unknown secrets are identical so clients cannot tell them apart.

Non-AppError exceptions bubble up as 500s (with Sentry reporting in production).
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from credentials.errors import CredentialError, CredentialErrorKind
from shared.logging import get_logger

log = get_logger(__name__)


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details

    def to_dict(self) -> dict:
        payload: dict = {"error": self.message, "code": self.error_code}
        if self.field is not None:
            payload["field"] = self.field
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(AppError):
    status_code = 400
    error_code = "validation_error"


class AuthenticationError(AppError):
    status_code = 401
    error_code = "authentication_error"


class ForbiddenError(AppError):
    status_code = 403
    error_code = "forbidden"


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"


class ConflictError(AppError):
    status_code = 409
    error_code = "conflict"


class DeliveryError(AppError):
    status_code = 502
    error_code = "delivery_failed"


class RateLimitError(AppError):
    status_code = 429
    error_code = "rate_limit_exceeded"


class InvalidCodeError(AppError):
    status_code = 400
    error_code = "invalid_code"


class ExpiredCodeError(AppError):
    status_code = 400
    error_code = "expired_code"


class AttemptsExhaustedError(AppError):
    status_code = 429
    error_code = "attempts_exhausted"


INVALID_CODE_MESSAGE = "Invalid or expired code"

_CREDENTIAL_ERRORS: dict[CredentialErrorKind, tuple[type[AppError], str]] = {
    CredentialErrorKind.OWNER_NOT_FOUND: (NotFoundError, "User not found"),
    CredentialErrorKind.OWNER_INACTIVE: (ForbiddenError, "Account is blocked"),
    CredentialErrorKind.ALREADY_SATISFIED: (ConflictError, "Already verified"),
    CredentialErrorKind.INVALID_SECRET: (InvalidCodeError, INVALID_CODE_MESSAGE),
    CredentialErrorKind.ALREADY_CONSUMED: (InvalidCodeError, INVALID_CODE_MESSAGE),
    CredentialErrorKind.EXPIRED_SECRET: (
        ExpiredCodeError,
        "Code has expired, please request a new one",
    ),
    CredentialErrorKind.ATTEMPTS_EXHAUSTED: (
        AttemptsExhaustedError,
        "Too many attempts, please request a new one",
    ),
    CredentialErrorKind.ISSUE_RATE_LIMITED: (
        RateLimitError,
        "Too many requests, please try again later",
    ),
    CredentialErrorKind.STORAGE_FAILURE: (AppError, "An internal server error occurred."),
}


def credential_error_to_app_error(exc: CredentialError) -> AppError:
    """Map a credential error kind to the client-facing AppError."""
    error_cls, message = _CREDENTIAL_ERRORS[exc.kind]
    details = None
    if exc.remaining_attempts is not None and exc.kind in (
        CredentialErrorKind.INVALID_SECRET,
        CredentialErrorKind.ATTEMPTS_EXHAUSTED,
    ):
        details = {"remaining_attempts": exc.remaining_attempts}
    return error_cls(message, details=details)


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(CredentialError)
    async def credential_error_handler(
        request: Request, exc: CredentialError
    ) -> JSONResponse:
        if exc.kind is CredentialErrorKind.STORAGE_FAILURE:
            log.error("request_failed", path=request.url.path, error_kind=exc.kind.value)
        app_error = credential_error_to_app_error(exc)
        return JSONResponse(status_code=app_error.status_code, content=app_error.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        # Sentry integration: if sentry_sdk is initialized it will auto-capture
        # unhandled exceptions before this handler fires.
        log.error(
            "unhandled_exception",
            path=request.url.path,
            error_type=type(exc).__name__,
        )
        return JSONResponse(
            status_code=500,
            content={"error": "An internal server error occurred.", "code": "internal_error"},
        )
