"""Authentication routes."""
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .. import config
from ..application.services import NotificationService
from ..config import SESSION_COOKIE, SESSION_MAX_AGE
from ..database import get_db
from ..dependencies import get_locale
from ..errors import AuthenticationError
from ..i18n import t
from ..log import get_logger
from .deps import get_auth_service, get_password_reset_service

logger = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class RegisterInput(BaseModel):
    email: str
    password: str
    name: str
    preferred_language: str | None = None


class LoginInput(BaseModel):
    email: str
    password: str


class EmailInput(BaseModel):
    email: str


class ResetPasswordInput(BaseModel):
    token: str
    password: str


def _verify_url(token: str) -> str:
    return f"{config.PUBLIC_URL}/api/auth/verify-email?token={token}"


def _session_response(content: dict, session_id: str, status_code: int = 200) -> JSONResponse:
    response = JSONResponse(content=content, status_code=status_code)
    response.set_cookie(
        key=SESSION_COOKIE,
        value=session_id,
        httponly=True,
        samesite="lax",
        max_age=SESSION_MAX_AGE
    )
    return response


@router.post("/register")
def register(data: RegisterInput, request: Request):
    """Create an account and log it in."""
    service = get_auth_service(get_db())
    user = service.register(
        email=data.email,
        password=data.password,
        name=data.name,
        preferred_language=data.preferred_language or get_locale(request)
    )

    token = service.issue_verification_token(user["id"])
    result = NotificationService().send_welcome(user, _verify_url(token))
    if not result.success:
        logger.info("welcome_email_not_sent", user_id=user["id"], error=result.error)

    session_id = service.create_session(user["id"])
    return _session_response({"success": True, "user": user}, session_id, status_code=201)


@router.post("/login")
def login(data: LoginInput):
    """Check credentials and start a session."""
    service = get_auth_service(get_db())
    user = service.authenticate(data.email, data.password)
    if not user:
        raise AuthenticationError("Invalid email or password")

    session_id = service.create_session(user["id"])
    return _session_response({"success": True, "user": user}, session_id)


@router.post("/logout")
def logout(request: Request):
    """End the current session."""
    session_id = request.cookies.get(SESSION_COOKIE)
    if session_id:
        get_auth_service(get_db()).delete_session(session_id)

    response = JSONResponse(content={"success": True})
    response.delete_cookie(SESSION_COOKIE)
    return response


# === Email Verification ===

@router.get("/verify-email")
def verify_email(request: Request, token: str = ""):
    """Confirm the email address from the link in the welcome email."""
    user = get_auth_service(get_db()).verify_email(token)
    return {"success": True, "user": user, "message": t(get_locale(request), "auth.email_verified")}


@router.post("/resend-verification")
def resend_verification(data: EmailInput, request: Request):
    """Send a new verification link; the answer never reveals whether the email exists."""
    issued = get_auth_service(get_db()).resend_verification(data.email)
    if issued:
        user, token = issued
        result = NotificationService().send_welcome(user, _verify_url(token))
        if not result.success:
            logger.info("verification_email_not_sent", user_id=user["id"], error=result.error)
    return {"success": True, "message": t(get_locale(request), "auth.verification_sent")}


# === Password Reset ===

@router.post("/forgot-password")
def forgot_password(data: EmailInput, request: Request):
    """Email a reset link; the answer never reveals whether the email exists."""
    get_password_reset_service(get_db()).request_reset(data.email)
    return {"success": True, "message": t(get_locale(request), "auth.reset_requested")}


@router.get("/reset-password/verify")
def verify_reset_token(request: Request, token: str = ""):
    record = get_password_reset_service(get_db()).verify_token(token)
    return {
        "success": True,
        "email": record["email"],
        "expires_at": record["expires_at"],
        "message": t(get_locale(request), "auth.reset_token_valid"),
    }


@router.post("/reset-password")
def reset_password(data: ResetPasswordInput, request: Request):
    """Set a new password; every session of the user is ended."""
    get_password_reset_service(get_db()).reset_password(data.token, data.password)
    response = JSONResponse(content={
        "success": True,
        "message": t(get_locale(request), "auth.password_reset"),
    })
    response.delete_cookie(SESSION_COOKIE)
    return response
