"""Shared dependencies for API routes.

This module contains factory functions for creating services
used across the route modules.
"""
from ..application.services import (
    AuthService, BookingService, CatalogService, DownloadService,
    NotificationService, PasswordResetService, ProgressService, ReviewService,
    SearchService, TranslationService, UploadService, UserPreferenceService
)
from ..infrastructure.repositories import (
    BookingRepository, CourseProgressRepository, CourseRepository,
    EventRepository, LessonProgressRepository, OrderRepository,
    PasswordResetRepository, ProductRepository, ReviewRepository,
    SearchRepository, SessionRepository, TranslationRepository, UserRepository
)


def get_auth_service(db) -> AuthService:
    """Create AuthService with repositories."""
    return AuthService(
        user_repository=UserRepository(db),
        session_repository=SessionRepository(db)
    )


def get_password_reset_service(db) -> PasswordResetService:
    """Create PasswordResetService with repositories and email notifications."""
    return PasswordResetService(
        user_repository=UserRepository(db),
        reset_repository=PasswordResetRepository(db),
        session_repository=SessionRepository(db),
        notification_service=NotificationService()
    )


def get_user_preference_service(db) -> UserPreferenceService:
    return UserPreferenceService(user_repository=UserRepository(db))


def get_catalog_service(db) -> CatalogService:
    """Create CatalogService with repositories."""
    return CatalogService(
        course_repository=CourseRepository(db),
        product_repository=ProductRepository(db),
        event_repository=EventRepository(db),
        review_repository=ReviewRepository(db)
    )


def get_search_service(db) -> SearchService:
    return SearchService(search_repository=SearchRepository(db))


def get_translation_service(db) -> TranslationService:
    return TranslationService(translation_repository=TranslationRepository(db))


def get_progress_service(db) -> ProgressService:
    """Create ProgressService with repositories."""
    return ProgressService(
        course_progress_repository=CourseProgressRepository(db),
        lesson_progress_repository=LessonProgressRepository(db),
        course_repository=CourseRepository(db),
        order_repository=OrderRepository(db)
    )


def get_review_service(db) -> ReviewService:
    """Create ReviewService with repositories and email notifications."""
    return ReviewService(
        review_repository=ReviewRepository(db),
        order_repository=OrderRepository(db),
        course_repository=CourseRepository(db),
        notification_service=NotificationService()
    )


def get_upload_service() -> UploadService:
    return UploadService()


def get_download_service(db) -> DownloadService:
    """Create DownloadService with repositories and storage."""
    return DownloadService(
        product_repository=ProductRepository(db),
        order_repository=OrderRepository(db),
        upload_service=UploadService()
    )


def get_booking_service(db) -> BookingService:
    """Create BookingService with repositories and email notifications."""
    return BookingService(
        booking_repository=BookingRepository(db),
        event_repository=EventRepository(db),
        notification_service=NotificationService()
    )
