"""Application services - business logic layer."""

from .auth_service import AuthService
from .user_preference_service import UserPreferenceService
from .notification_service import NotificationService
from .search_service import SearchService, SearchOptions
from .catalog_service import CatalogService
from .translation_service import TranslationService
from .progress_service import ProgressService
from .review_service import ReviewService
from .upload_service import UploadService
from .download_service import DownloadService
from .password_reset_service import PasswordResetService
from .booking_service import BookingService

__all__ = [
    "AuthService",
    "UserPreferenceService",
    "NotificationService",
    "SearchService",
    "SearchOptions",
    "CatalogService",
    "TranslationService",
    "ProgressService",
    "ReviewService",
    "UploadService",
    "DownloadService",
    "PasswordResetService",
    "BookingService",
]
