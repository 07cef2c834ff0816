"""Shared FastAPI dependencies."""
from fastapi import Request

from .errors import AuthenticationError, AuthorizationError
from .i18n import DEFAULT_LOCALE


def get_current_user(request: Request) -> dict | None:
    """Get current user from request state."""
    return getattr(request.state, "user", None)


def require_user(request: Request) -> dict:
    """Require authenticated user, raise 401 if not authenticated."""
    user = get_current_user(request)
    if not user:
        raise AuthenticationError()
    return user


def require_admin(request: Request) -> dict:
    """Require an admin user, raise 401/403 otherwise."""
    user = require_user(request)
    if user.get("role") != "admin":
        raise AuthorizationError("Admin access required")
    return user


def is_admin(user: dict | None) -> bool:
    return bool(user) and user.get("role") == "admin"


def get_locale(request: Request) -> str:
    """Locale detected by I18nMiddleware."""
    return getattr(request.state, "locale", DEFAULT_LOCALE)
