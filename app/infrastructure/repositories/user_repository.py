"""User repository - handles all user-related database operations."""
import bcrypt

from .base import Repository

# Columns safe to hand to the rest of the application
PUBLIC_COLUMNS = "id, email, name, role, preferred_language, email_verified, created_at, updated_at"


class UserRepository(Repository):
    """Repository for user entity operations.

    Examples:
        >>> repo = UserRepository(db)
        >>> user = repo.get_by_id(1)
        >>> user_id = repo.create("jane@example.com", "password123", "Jane Doe")
    """

    def get_by_id(self, user_id: int) -> dict | None:
        """Get user by ID.

        Args:
            user_id: User ID

        Returns:
            User dict (without password hash) or None if not found
        """
        return self._decode(self._fetchone(
            f"SELECT {PUBLIC_COLUMNS} FROM users WHERE id = ?",
            (user_id,)
        ))

    def get_by_email(self, email: str) -> dict | None:
        """Get user by email (case-insensitive).

        Args:
            email: Email address

        Returns:
            User dict (without password hash) or None if not found
        """
        return self._decode(self._fetchone(
            f"SELECT {PUBLIC_COLUMNS} FROM users WHERE email = ?",
            (self._normalize_email(email),)
        ))

    def create(
        self,
        email: str,
        password: str,
        name: str,
        role: str = "user",
        preferred_language: str = "en"
    ) -> int:
        """Create new user.

        Args:
            email: Unique email address
            password: Plain text password (will be hashed)
            name: Display name
            role: 'user' or 'admin'
            preferred_language: Locale code for emails and UI

        Returns:
            New user ID
        """
        cursor = self._execute(
            """INSERT INTO users
               (email, password_hash, name, role, preferred_language)
               VALUES (?, ?, ?, ?, ?)""",
            (
                self._normalize_email(email),
                self._hash_password(password),
                name.strip(),
                role,
                preferred_language,
            )
        )
        self._commit()
        return cursor.lastrowid

    def update_password(self, user_id: int, new_password: str) -> bool:
        """Update user password.

        Returns:
            True if user existed and was updated
        """
        cursor = self._execute(
            "UPDATE users SET password_hash = ?, updated_at = ? WHERE id = ?",
            (self._hash_password(new_password), self._now(), user_id)
        )
        self._commit()
        return cursor.rowcount > 0

    def delete(self, user_id: int) -> bool:
        """Delete user; sessions, reviews and progress cascade.

        Returns:
            True if user existed and was deleted
        """
        cursor = self._execute("DELETE FROM users WHERE id = ?", (user_id,))
        self._commit()
        return cursor.rowcount > 0

    def list_all(self) -> list[dict]:
        """List all users ordered by email."""
        return self._fetchall(f"SELECT {PUBLIC_COLUMNS} FROM users ORDER BY email")

    def authenticate(self, email: str, password: str) -> dict | None:
        """Check credentials.

        Returns:
            User dict (without password hash) if valid, None otherwise
        """
        row = self._fetchone(
            "SELECT id, password_hash FROM users WHERE email = ?",
            (self._normalize_email(email),)
        )
        if not row or not self._verify_password(password, row["password_hash"]):
            return None
        return self.get_by_id(row["id"])

    def set_role(self, user_id: int, role: str) -> bool:
        """Change user role ('user' or 'admin')."""
        cursor = self._execute(
            "UPDATE users SET role = ?, updated_at = ? WHERE id = ?",
            (role, self._now(), user_id)
        )
        self._commit()
        return cursor.rowcount > 0

    def get_language(self, user_id: int) -> str | None:
        """Stored language preference, or None if the user doesn't exist."""
        row = self._fetchone(
            "SELECT preferred_language FROM users WHERE id = ?",
            (user_id,)
        )
        return row["preferred_language"] if row else None

    def set_language(self, user_id: int, language: str) -> bool:
        cursor = self._execute(
            "UPDATE users SET preferred_language = ?, updated_at = ? WHERE id = ?",
            (language, self._now(), user_id)
        )
        self._commit()
        return cursor.rowcount > 0

    # Email verification

    def set_verification_token(self, user_id: int, token: str, expires_at: str) -> bool:
        """Replace the user's pending verification token."""
        cursor = self._execute(
            """UPDATE users
               SET email_verification_token = ?, email_verification_expires = ?, updated_at = ?
               WHERE id = ?""",
            (token, expires_at, self._now(), user_id)
        )
        self._commit()
        return cursor.rowcount > 0

    def get_by_verification_token(self, token: str) -> dict | None:
        """User owning a verification token, with the token's expiry."""
        return self._decode(self._fetchone(
            f"""SELECT {PUBLIC_COLUMNS}, email_verification_expires
                FROM users WHERE email_verification_token = ?""",
            (token,)
        ))

    def mark_email_verified(self, user_id: int) -> bool:
        """Set email_verified and clear the token."""
        cursor = self._execute(
            """UPDATE users
               SET email_verified = 1, email_verification_token = NULL,
                   email_verification_expires = NULL, updated_at = ?
               WHERE id = ?""",
            (self._now(), user_id)
        )
        self._commit()
        return cursor.rowcount > 0

    # Private helper methods

    @staticmethod
    def _decode(user: dict | None) -> dict | None:
        if user is not None:
            user["email_verified"] = bool(user.get("email_verified"))
        return user

    @staticmethod
    def _normalize_email(email: str) -> str:
        return email.strip().lower()

    @staticmethod
    def _hash_password(password: str) -> str:
        """Hash password using bcrypt."""
        hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
        return hashed.decode("utf-8")

    @staticmethod
    def _verify_password(password: str, hashed: str) -> bool:
        """Verify password against a bcrypt hash."""
        try:
            return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            # Malformed hash in the database
            return False
