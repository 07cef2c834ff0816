"""Password reset service - emailed, single-use reset links."""
import secrets
from typing import Optional

from ... import config
from ...errors import ValidationError, log_error
from ...infrastructure.repositories import (
    PasswordResetRepository,
    SessionRepository,
    UserRepository,
)
from ...infrastructure.repositories.base import utc_now
from ...log import get_logger
from .auth_service import password_error
from .notification_service import NotificationService

logger = get_logger(__name__)

RESET_TOKEN_HOURS = 1
REQUEST_COOLDOWN_MINUTES = 5


class PasswordResetService:
    """Issues, verifies and redeems password reset tokens.

    A successful reset consumes the token, invalidates every other
    outstanding token of the user and ends all of the user's sessions.
    """

    def __init__(
        self,
        user_repository: UserRepository,
        reset_repository: PasswordResetRepository,
        session_repository: SessionRepository,
        notification_service: Optional[NotificationService] = None
    ):
        self.user_repo = user_repository
        self.reset_repo = reset_repository
        self.session_repo = session_repository
        self.notifications = notification_service

    def request_reset(self, email: str) -> bool:
        """Email a reset link to the account, if there is one.

        Requests for unknown emails, and repeated requests within five
        minutes, are ignored.

        Returns:
            True if a new token was issued
        """
        user = self.user_repo.get_by_email(email or "")
        if not user:
            logger.info("password_reset_unknown_email")
            return False

        if self.reset_repo.has_recent_request(user["id"], REQUEST_COOLDOWN_MINUTES):
            logger.info("password_reset_throttled", user_id=user["id"])
            return False

        token = secrets.token_urlsafe(32)
        self.reset_repo.create(user["id"], token, RESET_TOKEN_HOURS)
        logger.info("password_reset_requested", user_id=user["id"])

        self._send_link(user, token)
        return True

    def _send_link(self, user: dict, token: str) -> None:
        """Send the reset email; failures never reach the caller."""
        if not self.notifications:
            return

        reset_url = f"{config.PUBLIC_URL}/reset-password?token={token}"
        try:
            result = self.notifications.send_password_reset(user, reset_url, RESET_TOKEN_HOURS * 60)
        except Exception as e:
            log_error(e, context="password_reset_email", user_id=user["id"])
            return

        if not result.success:
            logger.warning("password_reset_email_not_sent", user_id=user["id"], error=result.error)

    def verify_token(self, token: str) -> dict:
        """Check a reset token without consuming it.

        Returns:
            Token record with the user's email and name

        Raises:
            ValidationError: Unknown, used or expired token
        """
        record = self.reset_repo.get_by_token(token) if token else None
        if not record:
            raise ValidationError("Invalid reset token")
        if record["used"]:
            raise ValidationError("Reset token has already been used")
        if record["expires_at"] <= utc_now():
            raise ValidationError("Reset token has expired")
        return record

    def reset_password(self, token: str, new_password: str) -> dict:
        """Set a new password using a reset token.

        Returns:
            The user whose password changed

        Raises:
            ValidationError: Weak password, or the token is unusable
        """
        problem = password_error(new_password)
        if problem:
            raise ValidationError("Invalid password", fields={"password": problem})

        record = self.verify_token(token)
        # Another request may have redeemed the token since verify_token
        if not self.reset_repo.mark_used(token):
            raise ValidationError("Reset token has already been used")

        user_id = record["user_id"]
        self.user_repo.update_password(user_id, new_password)
        self.reset_repo.invalidate_for_user(user_id)
        ended = self.session_repo.delete_for_user(user_id)
        logger.info("password_reset", user_id=user_id, sessions_ended=ended)
        return self.user_repo.get_by_id(user_id)
