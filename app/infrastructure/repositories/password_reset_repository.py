"""Password reset repository - single-use, short-lived reset tokens."""
from .base import Repository, utc_in


class PasswordResetRepository(Repository):
    """Repository for the password_reset_tokens table.

    Examples:
        >>> repo = PasswordResetRepository(db)
        >>> repo.create(1, token, expires_hours=1)
        >>> record = repo.get_by_token(token)
        >>> repo.mark_used(token)
    """

    def create(self, user_id: int, token: str, expires_hours: float = 1) -> int:
        cursor = self._execute(
            """INSERT INTO password_reset_tokens (user_id, token, expires_at, created_at)
               VALUES (?, ?, ?, ?)""",
            (user_id, token, utc_in(expires_hours), self._now())
        )
        self._commit()
        return cursor.lastrowid

    def get_by_token(self, token: str) -> dict | None:
        """Token record joined with its user's email and name."""
        record = self._fetchone(
            """SELECT t.*, u.email, u.name, u.preferred_language
               FROM password_reset_tokens t
               JOIN users u ON u.id = t.user_id
               WHERE t.token = ?""",
            (token,)
        )
        if record is not None:
            record["used"] = bool(record["used"])
        return record

    def mark_used(self, token: str) -> bool:
        """Consume a token.

        Returns:
            False if the token was already used (or does not exist)
        """
        cursor = self._execute(
            "UPDATE password_reset_tokens SET used = 1, used_at = ? WHERE token = ? AND used = 0",
            (self._now(), token)
        )
        self._commit()
        return cursor.rowcount > 0

    def invalidate_for_user(self, user_id: int) -> int:
        """Mark every outstanding token of a user as used."""
        cursor = self._execute(
            "UPDATE password_reset_tokens SET used = 1, used_at = ? WHERE user_id = ? AND used = 0",
            (self._now(), user_id)
        )
        self._commit()
        return cursor.rowcount

    def has_recent_request(self, user_id: int, minutes: int = 5) -> bool:
        """True if a token was issued to the user in the last `minutes`."""
        row = self._fetchone(
            "SELECT 1 FROM password_reset_tokens WHERE user_id = ? AND created_at > ? LIMIT 1",
            (user_id, utc_in(-minutes / 60))
        )
        return row is not None
