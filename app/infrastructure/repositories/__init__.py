# Repository Pattern Implementation
"""
Repositories abstract database operations.
Each entity has its own repository.

Usage:
    from app.database import get_db
    from app.infrastructure.repositories import CourseRepository

    repo = CourseRepository(get_db())
    course = repo.get_by_id(course_id)
"""
from .base import Repository, ConnectionProtocol
from .user_repository import UserRepository
from .session_repository import SessionRepository
from .course_repository import CourseRepository
from .product_repository import ProductRepository
from .event_repository import EventRepository
from .order_repository import OrderRepository
from .review_repository import ReviewRepository
from .course_progress_repository import CourseProgressRepository
from .lesson_progress_repository import LessonProgressRepository
from .search_repository import SearchRepository
from .translation_repository import TranslationRepository
from .password_reset_repository import PasswordResetRepository
from .booking_repository import BookingRepository

__all__ = [
    "Repository",
    "ConnectionProtocol",
    "UserRepository",
    "SessionRepository",
    "CourseRepository",
    "ProductRepository",
    "EventRepository",
    "OrderRepository",
    "ReviewRepository",
    "CourseProgressRepository",
    "LessonProgressRepository",
    "SearchRepository",
    "TranslationRepository",
    "PasswordResetRepository",
    "BookingRepository",
]
