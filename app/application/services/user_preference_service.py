"""User preference service - language preference of a user."""
from ...errors import NotFoundError, ValidationError
from ...i18n import DEFAULT_LOCALE, is_valid_locale
from ...infrastructure.repositories import UserRepository


class UserPreferenceService:
    """Service for user preferences.

    The stored language drives the locale of emails sent to the user; the
    UI locale itself follows the locale cookie.
    """

    def __init__(self, user_repository: UserRepository):
        self.user_repo = user_repository

    def get_language_preference(self, user_id: int) -> str:
        """Stored language, or the default locale when missing or invalid."""
        language = self.user_repo.get_language(user_id)
        return language if is_valid_locale(language) else DEFAULT_LOCALE

    def update_language_preference(self, user_id: int, language: str) -> str:
        """Change the user's language.

        Raises:
            ValidationError: If language is not a supported locale
            NotFoundError: If the user doesn't exist
        """
        if not is_valid_locale(language):
            raise ValidationError('Invalid language. Must be "en" or "es".')

        if not self.user_repo.set_language(user_id, language):
            raise NotFoundError("User")
        return language
