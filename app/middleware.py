"""Application middleware."""
import secrets

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from . import config
from .config import (
    PROTECTED_PATH_PREFIXES, SESSION_COOKIE,
    CSRF_TOKEN_NAME, CSRF_HEADER_NAME, CSRF_COOKIE_NAME,
    LOCALE_COOKIE, LOCALE_COOKIE_MAX_AGE
)
from .database import get_db
from .errors import AppError, AuthenticationError
from .i18n import DEFAULT_LOCALE, extract_locale_from_path, get_locale_from_request
from .infrastructure.repositories import SessionRepository
from .log import get_logger

logger = get_logger(__name__)


def _error_response(error: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content={"success": False, "error": error.to_dict()}
    )


def _is_protected(path: str) -> bool:
    return any(path == p or path.startswith(p + "/") for p in PROTECTED_PATH_PREFIXES)


class AuthMiddleware(BaseHTTPMiddleware):
    """Attach the session user to the request; guard protected paths."""

    async def dispatch(self, request: Request, call_next):
        request.state.user = None

        # Check session cookie
        session_id = request.cookies.get(SESSION_COOKIE)
        if session_id:
            session = SessionRepository(get_db()).get_valid(session_id)
            if session:
                # Valid session - attach user info to request state
                request.state.user = {
                    "id": session["user_id"],
                    "email": session["email"],
                    "name": session["name"],
                    "role": session["role"],
                    "preferred_language": session["preferred_language"],
                }

        if request.state.user is None and _is_protected(request.url.path):
            return _error_response(AuthenticationError())

        return await call_next(request)


class CSRFMiddleware(BaseHTTPMiddleware):
    """Double-submit cookie protection for state-changing requests."""

    # Methods that require CSRF protection
    PROTECTED_METHODS = {"POST", "PUT", "DELETE", "PATCH"}

    # No session exists yet on these paths
    EXEMPT_PATHS = {
        "/api/auth/login",
        "/api/auth/register",
        "/api/auth/resend-verification",
        "/api/auth/forgot-password",
        "/api/auth/reset-password",
    }

    async def dispatch(self, request: Request, call_next):
        # Generate CSRF token if not present
        csrf_token = request.cookies.get(CSRF_COOKIE_NAME)
        if not csrf_token:
            csrf_token = secrets.token_urlsafe(32)

        request.state.csrf_token = csrf_token

        if request.method in self.PROTECTED_METHODS and request.url.path not in self.EXEMPT_PATHS:
            # Get token from header, then query params
            request_token = request.headers.get(CSRF_HEADER_NAME)
            if not request_token:
                request_token = request.query_params.get(CSRF_TOKEN_NAME)

            stored_token = request.cookies.get(CSRF_COOKIE_NAME)
            if not stored_token or not request_token or not secrets.compare_digest(stored_token, request_token):
                logger.warning("csrf_rejected", path=request.url.path, method=request.method)
                return _error_response(
                    AppError("CSRF token missing or invalid", status_code=403, code="CSRF_ERROR")
                )

        response = await call_next(request)
        return self._set_csrf_cookie(response, csrf_token)

    def _set_csrf_cookie(self, response, token: str):
        """Set CSRF cookie on response."""
        response.set_cookie(
            key=CSRF_COOKIE_NAME,
            value=token,
            httponly=False,  # JavaScript needs to read this
            samesite="lax",
            secure=config.IS_PRODUCTION,
            max_age=60 * 60 * 24  # 24 hours
        )
        return response


class I18nMiddleware(BaseHTTPMiddleware):
    """Detect the request locale.

    Priority: path prefix (/es/...) > ?lang > locale cookie >
    Accept-Language > default. A path prefix is stripped before routing,
    so /es/api/courses is served by /api/courses.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            locale = self._detect(request)
        except Exception as e:
            logger.error("locale_detection_failed", error=str(e), path=request.url.path)
            locale = DEFAULT_LOCALE

        request.state.locale = locale
        request.state.default_locale = DEFAULT_LOCALE

        response = await call_next(request)

        response.headers["Content-Language"] = locale
        if request.cookies.get(LOCALE_COOKIE) != locale and not self._sets_locale_cookie(response):
            response.set_cookie(
                key=LOCALE_COOKIE,
                value=locale,
                max_age=LOCALE_COOKIE_MAX_AGE,
                path="/",
                httponly=False,  # client-side language switcher reads it
                samesite="lax",
                secure=config.IS_PRODUCTION
            )
        return response

    @staticmethod
    def _sets_locale_cookie(response) -> bool:
        """True if the route already chose the locale cookie (language switch)."""
        prefix = f"{LOCALE_COOKIE}="
        return any(cookie.startswith(prefix) for cookie in response.headers.getlist("set-cookie"))

    @staticmethod
    def _detect(request: Request) -> str:
        path_locale, clean_path = extract_locale_from_path(request.url.path)
        if path_locale:
            request.scope["path"] = clean_path
            request.scope["raw_path"] = clean_path.encode("utf-8")
            return path_locale
        return get_locale_from_request(request)
