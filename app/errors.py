"""Application error hierarchy.

Services raise these; ``app.main`` turns them into JSON responses of the form
``{"success": false, "error": {...}}`` with the matching status code.
"""
from typing import Any, Optional

from . import config
from .log import get_logger

logger = get_logger(__name__)


class AppError(Exception):
    """Base class for errors that carry an HTTP status and an error code."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "message": self.message,
            "code": self.code,
            "status_code": self.status_code,
        }


class ValidationError(AppError):
    """Invalid input (400)."""

    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, fields: Optional[dict[str, str]] = None):
        super().__init__(message)
        self.fields = fields

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.fields:
            data["fields"] = self.fields
        return data


class AuthenticationError(AppError):
    status_code = 401
    code = "AUTHENTICATION_ERROR"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class AuthorizationError(AppError):
    status_code = 403
    code = "AUTHORIZATION_ERROR"

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(message)


class NotFoundError(AppError):
    """Missing resource (404). Message is "<resource> not found"."""

    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource", message: Optional[str] = None):
        super().__init__(message or f"{resource} not found")
        self.resource = resource


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"


class PaymentError(AppError):
    status_code = 402
    code = "PAYMENT_ERROR"


class DatabaseError(AppError):
    status_code = 500
    code = "DATABASE_ERROR"


class ExternalServiceError(AppError):
    """Failure talking to a third-party service (502)."""

    status_code = 502
    code = "EXTERNAL_SERVICE_ERROR"

    def __init__(self, service: str, message: Optional[str] = None):
        super().__init__(message or f"{service} service is unavailable")
        self.service = service


class RateLimitError(AppError):
    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"

    def __init__(self, message: str = "Too many requests"):
        super().__init__(message)


def normalize_error(exc: BaseException) -> AppError:
    """Convert any exception to an AppError.

    Outside production the original message is kept for debugging; in
    production unexpected errors are reported generically.
    """
    if isinstance(exc, AppError):
        return exc
    if config.IS_PRODUCTION:
        return AppError("An unexpected error occurred")
    return AppError(str(exc) or type(exc).__name__)


def log_error(exc: BaseException, **context: Any) -> None:
    """Log an error with its code and any request context."""
    if isinstance(exc, AppError) and exc.status_code < 500:
        logger.warning(
            "request_failed",
            error=exc.name,
            code=exc.code,
            message=exc.message,
            **context,
        )
        return
    logger.error(
        "unhandled_error",
        error=type(exc).__name__,
        message=str(exc),
        exc_info=exc,
        **context,
    )
