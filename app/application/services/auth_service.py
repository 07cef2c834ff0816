"""Authentication service - handles registration, login, email verification and sessions."""
import re
import secrets
import sqlite3
from typing import Optional

from ...errors import ConflictError, ValidationError
from ...i18n import DEFAULT_LOCALE, is_valid_locale
from ...infrastructure.repositories import UserRepository, SessionRepository
from ...infrastructure.repositories.base import utc_in, utc_now
from ...log import get_logger

logger = get_logger(__name__)

MIN_PASSWORD_LENGTH = 8
VERIFICATION_TOKEN_HOURS = 24

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def password_error(password: Optional[str]) -> Optional[str]:
    """Why a password is unacceptable, or None."""
    if len(password or "") < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    return None


class AuthService:
    """Service for authentication operations.

    Responsibilities:
    - User registration
    - User authentication
    - Email verification
    - Session management
    """

    def __init__(
        self,
        user_repository: UserRepository,
        session_repository: SessionRepository
    ):
        self.user_repo = user_repository
        self.session_repo = session_repository

    def register(
        self,
        email: str,
        password: str,
        name: str,
        preferred_language: str = DEFAULT_LOCALE
    ) -> dict:
        """Create a new user account.

        Args:
            email: Email address (stored lowercased)
            password: Plain text password, at least 8 characters
            name: Display name
            preferred_language: Locale for emails and UI

        Returns:
            The created user dict

        Raises:
            ValidationError: If any field is invalid
            ConflictError: If the email is already registered
        """
        fields = {}
        email = (email or "").strip().lower()
        name = (name or "").strip()

        if not _EMAIL_RE.match(email):
            fields["email"] = "Invalid email address"
        password_problem = password_error(password)
        if password_problem:
            fields["password"] = password_problem
        if not name:
            fields["name"] = "Name is required"
        if fields:
            raise ValidationError("Invalid registration data", fields=fields)

        if not is_valid_locale(preferred_language):
            preferred_language = DEFAULT_LOCALE

        if self.user_repo.get_by_email(email):
            raise ConflictError("An account with this email already exists")

        try:
            user_id = self.user_repo.create(email, password, name, preferred_language=preferred_language)
        except sqlite3.IntegrityError:
            raise ConflictError("An account with this email already exists")

        logger.info("user_registered", user_id=user_id)
        return self.user_repo.get_by_id(user_id)

    def issue_verification_token(self, user_id: int) -> str:
        """Create a fresh email verification token, replacing any previous one.

        Returns:
            The token (64 hex characters), valid for 24 hours
        """
        token = secrets.token_hex(32)
        self.user_repo.set_verification_token(user_id, token, utc_in(VERIFICATION_TOKEN_HOURS))
        return token

    def verify_email(self, token: str) -> dict:
        """Confirm an email address.

        Returns:
            The verified user

        Raises:
            ValidationError: Missing, unknown or expired token
            ConflictError: The email is already verified
        """
        if not token:
            raise ValidationError("Verification token is required")

        user = self.user_repo.get_by_verification_token(token)
        if not user:
            raise ValidationError("Invalid verification token")
        if user["email_verified"]:
            raise ConflictError("Email is already verified")
        if (user.get("email_verification_expires") or "") <= utc_now():
            raise ValidationError("Verification token has expired")

        self.user_repo.mark_email_verified(user["id"])
        logger.info("email_verified", user_id=user["id"])
        return self.user_repo.get_by_id(user["id"])

    def resend_verification(self, email: str) -> Optional[tuple[dict, str]]:
        """Issue a new verification token for an unverified account.

        Returns:
            Tuple of (user, token), or None for unknown or already verified
            emails so callers can answer without revealing which accounts exist
        """
        user = self.user_repo.get_by_email(email or "")
        if not user or user["email_verified"]:
            return None
        return user, self.issue_verification_token(user["id"])

    def authenticate(self, email: str, password: str) -> Optional[dict]:
        """Authenticate user with email and password.

        Returns:
            User dict if authenticated, None otherwise
        """
        if not email or not password:
            return None
        return self.user_repo.authenticate(email, password)

    def create_session(self, user_id: int, expires_hours: int = 24 * 7) -> str:
        """Create new session for user.

        Returns:
            Session ID
        """
        return self.session_repo.create(user_id, expires_hours)

    def get_session(self, session_id: str) -> Optional[dict]:
        """Get valid session by ID, None if missing or expired."""
        if not session_id:
            return None
        return self.session_repo.get_valid(session_id)

    def delete_session(self, session_id: str) -> bool:
        """Delete session (logout)."""
        return self.session_repo.delete(session_id)
