"""Tests for application services.

Tests the service layer business logic in isolation, with mocked
repositories.
"""
import re
import sqlite3
from unittest.mock import Mock

import pytest

from app.application.services import (
    AuthService,
    BookingService,
    CatalogService,
    DownloadService,
    NotificationService,
    PasswordResetService,
    ProgressService,
    ReviewService,
    SearchOptions,
    SearchService,
    TranslationService,
    UploadService,
    UserPreferenceService,
)
from app.application.services.progress_service import LESSON_NOT_STARTED, calculate_percentage
from app.application.services.translation_service import (
    calculate_completion_percentage,
    is_translation_complete,
)
from app.application.services.upload_service import format_file_size, generate_file_key
from app.errors import (
    AuthorizationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)
from app.infrastructure.email import EmailResult
from app.infrastructure.repositories.base import utc_in, utc_now
from app.infrastructure.storage import LocalStorage, StorageConfig

LESSONS = [{"id": f"lesson-{n}", "title": f"Lesson {n}"} for n in range(1, 5)]


class TestAuthService:
    """Test AuthService registration and login."""

    @pytest.fixture
    def mock_user_repo(self):
        repo = Mock()
        repo.get_by_email.return_value = None
        repo.create.return_value = 7
        repo.get_by_id.return_value = {"id": 7, "email": "jane@example.com", "name": "Jane"}
        return repo

    @pytest.fixture
    def auth_service(self, mock_user_repo):
        return AuthService(user_repository=mock_user_repo, session_repository=Mock())

    def test_register_normalizes_email(self, auth_service, mock_user_repo):
        user = auth_service.register("  Jane@Example.COM ", "longenough", " Jane ", "es")

        assert user["id"] == 7
        mock_user_repo.create.assert_called_once_with(
            "jane@example.com", "longenough", "Jane", preferred_language="es"
        )

    def test_register_unknown_language_uses_default(self, auth_service, mock_user_repo):
        auth_service.register("jane@example.com", "longenough", "Jane", "de")

        assert mock_user_repo.create.call_args.kwargs["preferred_language"] == "en"

    def test_register_reports_every_invalid_field(self, auth_service, mock_user_repo):
        with pytest.raises(ValidationError) as exc_info:
            auth_service.register("not-an-email", "short", "  ")

        assert set(exc_info.value.fields) == {"email", "password", "name"}
        mock_user_repo.create.assert_not_called()

    def test_register_duplicate_email(self, auth_service, mock_user_repo):
        mock_user_repo.get_by_email.return_value = {"id": 1}

        with pytest.raises(ConflictError):
            auth_service.register("jane@example.com", "longenough", "Jane")

    def test_register_race_on_unique_email(self, auth_service, mock_user_repo):
        mock_user_repo.create.side_effect = sqlite3.IntegrityError("UNIQUE constraint failed")

        with pytest.raises(ConflictError):
            auth_service.register("jane@example.com", "longenough", "Jane")

    def test_authenticate_without_credentials(self, auth_service, mock_user_repo):
        assert auth_service.authenticate("", "secret") is None
        mock_user_repo.authenticate.assert_not_called()

    def test_get_session(self, auth_service):
        auth_service.session_repo.get_valid.return_value = {"id": "s1", "user_id": 7}

        assert auth_service.get_session("") is None
        assert auth_service.get_session("s1")["user_id"] == 7
        auth_service.session_repo.get_valid.assert_called_once_with("s1")

    def test_issue_verification_token(self, auth_service, mock_user_repo):
        token = auth_service.issue_verification_token(7)

        assert re.fullmatch(r"[0-9a-f]{64}", token)
        user_id, stored, expires_at = mock_user_repo.set_verification_token.call_args.args
        assert (user_id, stored) == (7, token)
        assert expires_at > utc_now()

    def test_verify_email(self, auth_service, mock_user_repo):
        mock_user_repo.get_by_verification_token.return_value = {
            "id": 7, "email_verified": False, "email_verification_expires": utc_in(1),
        }

        auth_service.verify_email("tok")

        mock_user_repo.mark_email_verified.assert_called_once_with(7)

    @pytest.mark.parametrize("record,error,message", [
        (None, ValidationError, "Invalid verification token"),
        ({"id": 7, "email_verified": True, "email_verification_expires": None},
         ConflictError, "Email is already verified"),
        ({"id": 7, "email_verified": False, "email_verification_expires": "2000-01-01 00:00:00"},
         ValidationError, "Verification token has expired"),
    ])
    def test_verify_email_failures(self, auth_service, mock_user_repo, record, error, message):
        mock_user_repo.get_by_verification_token.return_value = record

        with pytest.raises(error) as exc_info:
            auth_service.verify_email("tok")

        assert exc_info.value.message == message
        mock_user_repo.mark_email_verified.assert_not_called()

    def test_resend_verification_hides_unknown_and_verified_accounts(self, auth_service, mock_user_repo):
        assert auth_service.resend_verification("nobody@example.com") is None

        mock_user_repo.get_by_email.return_value = {"id": 7, "email_verified": True}
        assert auth_service.resend_verification("jane@example.com") is None
        mock_user_repo.set_verification_token.assert_not_called()

    def test_resend_verification_issues_new_token(self, auth_service, mock_user_repo):
        mock_user_repo.get_by_email.return_value = {"id": 7, "email_verified": False}

        user, token = auth_service.resend_verification("jane@example.com")

        assert user["id"] == 7
        assert mock_user_repo.set_verification_token.call_args.args[1] == token


class TestPasswordResetService:
    """Test PasswordResetService token lifecycle."""

    @pytest.fixture
    def repos(self):
        user_repo = Mock()
        user_repo.get_by_email.return_value = {
            "id": 7, "email": "jane@example.com", "name": "Jane", "preferred_language": "en",
        }
        user_repo.get_by_id.return_value = {"id": 7, "email": "jane@example.com"}
        reset_repo = Mock()
        reset_repo.has_recent_request.return_value = False
        reset_repo.get_by_token.return_value = {
            "user_id": 7, "email": "jane@example.com", "used": False, "expires_at": utc_in(1),
        }
        reset_repo.mark_used.return_value = True
        session_repo = Mock()
        session_repo.delete_for_user.return_value = 2
        notifications = Mock()
        notifications.send_password_reset.return_value = EmailResult(success=True, message_id="m1")
        return user_repo, reset_repo, session_repo, notifications

    @pytest.fixture
    def reset_service(self, repos):
        return PasswordResetService(*repos)

    def test_request_reset_emails_link(self, reset_service, repos):
        _, reset_repo, _, notifications = repos

        assert reset_service.request_reset("jane@example.com") is True

        user_id, token, hours = reset_repo.create.call_args.args
        assert (user_id, hours) == (7, 1)
        user, url, minutes = notifications.send_password_reset.call_args.args
        assert url.endswith(f"/reset-password?token={token}")
        assert minutes == 60

    def test_request_reset_unknown_email(self, reset_service, repos):
        repos[0].get_by_email.return_value = None

        assert reset_service.request_reset("ghost@example.com") is False
        repos[1].create.assert_not_called()

    def test_request_reset_is_throttled(self, reset_service, repos):
        repos[1].has_recent_request.return_value = True

        assert reset_service.request_reset("jane@example.com") is False
        repos[3].send_password_reset.assert_not_called()

    def test_email_failure_does_not_fail_request(self, reset_service, repos):
        repos[3].send_password_reset.side_effect = RuntimeError("template broken")

        assert reset_service.request_reset("jane@example.com") is True

    @pytest.mark.parametrize("record,message", [
        (None, "Invalid reset token"),
        ({"user_id": 7, "used": True, "expires_at": "2999-01-01 00:00:00"}, "Reset token has already been used"),
        ({"user_id": 7, "used": False, "expires_at": "2000-01-01 00:00:00"}, "Reset token has expired"),
    ])
    def test_verify_token_failures(self, reset_service, repos, record, message):
        repos[1].get_by_token.return_value = record

        with pytest.raises(ValidationError) as exc_info:
            reset_service.verify_token("tok")

        assert exc_info.value.message == message

    def test_reset_password(self, reset_service, repos):
        user_repo, reset_repo, session_repo, _ = repos

        reset_service.reset_password("tok", "BrandNew123")

        reset_repo.mark_used.assert_called_once_with("tok")
        user_repo.update_password.assert_called_once_with(7, "BrandNew123")
        reset_repo.invalidate_for_user.assert_called_once_with(7)
        session_repo.delete_for_user.assert_called_once_with(7)

    def test_reset_password_rejects_weak_password(self, reset_service, repos):
        with pytest.raises(ValidationError) as exc_info:
            reset_service.reset_password("tok", "short")

        assert "password" in exc_info.value.fields
        repos[1].mark_used.assert_not_called()

    def test_token_redeemed_concurrently(self, reset_service, repos):
        repos[1].mark_used.return_value = False

        with pytest.raises(ValidationError) as exc_info:
            reset_service.reset_password("tok", "BrandNew123")

        assert exc_info.value.message == "Reset token has already been used"
        repos[0].update_password.assert_not_called()


class TestUserPreferenceService:

    def test_invalid_stored_language_falls_back(self):
        repo = Mock()
        repo.get_language.return_value = "klingon"

        assert UserPreferenceService(repo).get_language_preference(1) == "en"

    def test_update_rejects_unknown_language(self):
        repo = Mock()

        with pytest.raises(ValidationError) as exc_info:
            UserPreferenceService(repo).update_language_preference(1, "fr")

        assert exc_info.value.message == 'Invalid language. Must be "en" or "es".'
        repo.set_language.assert_not_called()

    def test_update_missing_user(self):
        repo = Mock()
        repo.set_language.return_value = False

        with pytest.raises(NotFoundError):
            UserPreferenceService(repo).update_language_preference(99, "es")


class TestReviewService:
    """Test ReviewService authoring and moderation."""

    @pytest.fixture
    def review(self):
        return {
            "id": "r1",
            "user_id": 1,
            "course_id": "c1",
            "rating": 5,
            "comment": "Great",
            "is_approved": 0,
            "user_email": "jane@example.com",
            "user_name": "Jane",
            "user_language": "es",
            "course_title": "Yoga",
            "course_title_es": "Yoga en español",
        }

    @pytest.fixture
    def repos(self, review):
        review_repo = Mock()
        review_repo.get_by_id.return_value = review
        review_repo.get_for_user_course.return_value = None
        review_repo.create.return_value = "r1"
        review_repo.set_approval.return_value = True
        order_repo = Mock()
        order_repo.has_purchased_course.return_value = True
        course_repo = Mock()
        course_repo.get_by_id.return_value = {"id": "c1"}
        return review_repo, order_repo, course_repo

    @pytest.fixture
    def notifications(self):
        service = Mock()
        service.send_review_approval.return_value = EmailResult(success=True, message_id="m1")
        service.send_review_rejection.return_value = EmailResult(success=True, message_id="m2")
        return service

    @pytest.fixture
    def review_service(self, repos, notifications):
        review_repo, order_repo, course_repo = repos
        return ReviewService(review_repo, order_repo, course_repo, notifications)

    def test_create_review(self, review_service, repos):
        review_repo = repos[0]

        result = review_service.create_review(1, "c1", 5, "  Great  ")

        assert result["id"] == "r1"
        review_repo.create.assert_called_once_with(1, "c1", 5, "Great")

    @pytest.mark.parametrize("rating", [0, 6, 3.5, True, "5"])
    def test_invalid_rating(self, review_service, rating):
        with pytest.raises(ValidationError):
            review_service.create_review(1, "c1", rating)

    def test_create_requires_purchase(self, review_service, repos):
        repos[1].has_purchased_course.return_value = False

        with pytest.raises(AuthorizationError) as exc_info:
            review_service.create_review(1, "c1", 4)

        assert exc_info.value.message == "You can only review courses you have purchased"

    def test_create_unknown_course(self, review_service, repos):
        repos[2].get_by_id.return_value = None

        with pytest.raises(NotFoundError):
            review_service.create_review(1, "missing", 4)

    def test_one_review_per_course(self, review_service, repos):
        repos[0].get_for_user_course.return_value = {"id": "r0"}

        with pytest.raises(ConflictError):
            review_service.create_review(1, "c1", 4)

    def test_update_approved_review_fails(self, review_service, review):
        review["is_approved"] = 1

        with pytest.raises(ValidationError):
            review_service.update_review("r1", 1, rating=3)

    def test_update_someone_elses_review_fails(self, review_service):
        with pytest.raises(AuthorizationError):
            review_service.update_review("r1", 2, rating=3)

    def test_update_needs_a_field(self, review_service):
        with pytest.raises(ValidationError) as exc_info:
            review_service.update_review("r1", 1)

        assert exc_info.value.message == "No fields to update"

    def test_update_clears_blank_comment(self, review_service, repos):
        review_service.update_review("r1", 1, comment="   ")

        repos[0].update.assert_called_once_with("r1", comment=None)

    def test_admin_deletes_approved_review(self, review_service, repos, review):
        review["is_approved"] = 1
        repos[0].delete.return_value = True

        assert review_service.delete_review("r1", user_id=99, is_admin=True) is True

    def test_author_cannot_delete_approved_review(self, review_service, review):
        review["is_approved"] = 1

        with pytest.raises(AuthorizationError):
            review_service.delete_review("r1", user_id=1)

    def test_pagination_is_clamped(self, review_service, repos):
        repos[0].list_reviews.return_value = ([], 250)

        result = review_service.get_reviews(course_id="c1", page=0, limit=500)

        assert result["page"] == 1
        assert result["limit"] == 100
        assert result["total_pages"] == 3
        assert repos[0].list_reviews.call_args.kwargs["offset"] == 0

    def test_approve_sends_notification(self, review_service, notifications, review):
        result = review_service.approve_review("r1")

        assert result is review
        notifications.send_review_approval.assert_called_once_with(review)
        notifications.send_review_rejection.assert_not_called()

    def test_reject_unknown_review(self, review_service, repos, notifications):
        repos[0].set_approval.return_value = False

        with pytest.raises(NotFoundError):
            review_service.reject_review("missing")
        notifications.send_review_rejection.assert_not_called()

    def test_notification_failure_does_not_fail_moderation(self, review_service, notifications, review):
        notifications.send_review_rejection.side_effect = RuntimeError("smtp down")

        assert review_service.reject_review("r1") is review

    def test_moderation_without_notifications(self, repos, review):
        review_repo, order_repo, course_repo = repos
        service = ReviewService(review_repo, order_repo, course_repo)

        assert service.approve_review("r1") is review

    def test_can_user_review_course(self, review_service, repos):
        assert review_service.can_user_review_course(1, "c1") is True

        repos[0].get_for_user_course.return_value = {"id": "r1"}
        assert review_service.can_user_review_course(1, "c1") is False

    def test_get_review_by_id(self, review_service, repos, review):
        assert review_service.get_review_by_id("r1") is review

        repos[0].get_by_id.return_value = None
        with pytest.raises(NotFoundError):
            review_service.get_review_by_id("missing")

    def test_pending_count(self, review_service, repos):
        repos[0].count_pending.return_value = 3

        assert review_service.get_pending_reviews_count() == 3


class TestNotificationService:

    def test_approval_email_in_recipient_language(self, monkeypatch):
        import app.config as config
        monkeypatch.setattr(config, "PUBLIC_URL", "https://shop.test")
        sender = Mock()
        sender.send.return_value = EmailResult(success=True)

        NotificationService(sender).send_review_approval({
            "id": "r1",
            "course_id": "c1",
            "rating": 4,
            "comment": None,
            "user_email": "ana@example.com",
            "user_name": "Ana",
            "user_language": "es",
            "course_title": "Mindful Yoga",
            "course_title_es": "Yoga consciente",
        })

        to, subject, html, text = sender.send.call_args.args
        assert to == "ana@example.com"
        assert subject == "Actualización de reseña: Yoga consciente"
        assert "https://shop.test/courses/c1#review-r1" in html

    def test_welcome_defaults_to_english(self):
        sender = Mock()

        NotificationService(sender).send_welcome(
            {"email": "sam@example.com", "name": "Sam", "preferred_language": None}
        )

        assert "Welcome" in sender.send.call_args.args[1]

    def test_password_reset_email(self):
        sender = Mock()

        NotificationService(sender).send_password_reset(
            {"email": "sam@example.com", "name": "Sam", "preferred_language": "en"},
            "https://shop.test/reset-password?token=abc",
            60,
        )

        to, subject, html, text = sender.send.call_args.args
        assert to == "sam@example.com"
        assert "https://shop.test/reset-password?token=abc" in text
        assert "60 minutes" in text

    def test_booking_confirmation_in_spanish(self):
        sender = Mock()

        NotificationService(sender).send_booking_confirmation({
            "id": "b1",
            "attendees": 2,
            "total_price": 150.0,
            "event_title": "Yoga Workshop",
            "event_title_es": "Taller de yoga",
            "event_date": "2030-03-01 09:00:00",
            "venue_city": "Madrid",
            "user_email": "ana@example.com",
            "user_name": "Ana",
            "user_language": "es",
        })

        to, subject, html, text = sender.send.call_args.args
        assert to == "ana@example.com"
        assert subject == "Reserva recibida: Taller de yoga"
        assert "Madrid" in text
        assert "150,00" in text


class TestBookingService:
    """Test BookingService capacity and eligibility rules."""

    @pytest.fixture
    def repos(self):
        booking_repo = Mock()
        booking_repo.get_for_event.return_value = None
        booking_repo.reserve.return_value = "b1"
        booking_repo.get_by_id.return_value = {"id": "b1", "user_id": 1, "attendees": 2}
        event_repo = Mock()
        event_repo.get_by_id.return_value = {
            "id": "e1",
            "is_published": True,
            "event_date": "2999-06-01 10:00:00",
            "available_spots": 5,
            "price": 37.5,
        }
        notifications = Mock()
        notifications.send_booking_confirmation.return_value = EmailResult(success=True)
        return booking_repo, event_repo, notifications

    @pytest.fixture
    def booking_service(self, repos):
        return BookingService(*repos)

    def test_book_event(self, booking_service, repos):
        booking = booking_service.book_event(1, "e1", 2)

        assert booking["id"] == "b1"
        repos[0].reserve.assert_called_once_with(1, "e1", 2, 75.0)
        repos[2].send_booking_confirmation.assert_called_once_with(booking)

    @pytest.mark.parametrize("attendees", [0, 11, True, "2"])
    def test_invalid_attendees(self, booking_service, repos, attendees):
        with pytest.raises(ValidationError) as exc_info:
            booking_service.book_event(1, "e1", attendees)

        assert "attendees" in exc_info.value.fields
        repos[1].get_by_id.assert_not_called()

    def test_unknown_event(self, booking_service, repos):
        repos[1].get_by_id.return_value = None

        with pytest.raises(NotFoundError) as exc_info:
            booking_service.book_event(1, "nope")

        assert exc_info.value.message == "Event not found"

    @pytest.mark.parametrize("changes,message", [
        ({"is_published": False}, "Event is not available for booking"),
        ({"event_date": "2000-01-01 10:00:00"}, "Cannot book past events"),
    ])
    def test_event_not_bookable(self, booking_service, repos, changes, message):
        repos[1].get_by_id.return_value.update(changes)

        with pytest.raises(ValidationError) as exc_info:
            booking_service.book_event(1, "e1")

        assert exc_info.value.message == message
        repos[0].reserve.assert_not_called()

    def test_already_booked(self, booking_service, repos):
        repos[0].get_for_event.return_value = {"id": "b0"}

        with pytest.raises(ConflictError) as exc_info:
            booking_service.book_event(1, "e1")

        assert exc_info.value.message == "You already have a booking for this event"

    def test_not_enough_spots(self, booking_service, repos):
        with pytest.raises(ConflictError) as exc_info:
            booking_service.book_event(1, "e1", 6)

        assert exc_info.value.message == "Insufficient capacity. Only 5 spot(s) available"
        repos[0].reserve.assert_not_called()

    def test_spots_taken_during_reservation(self, booking_service, repos):
        repos[0].reserve.return_value = None
        repos[1].get_by_id.side_effect = [
            {"id": "e1", "is_published": True, "event_date": "2999-06-01 10:00:00",
             "available_spots": 5, "price": 10},
            {"id": "e1", "available_spots": 1},
        ]

        with pytest.raises(ConflictError) as exc_info:
            booking_service.book_event(1, "e1", 3)

        assert exc_info.value.message == "Insufficient capacity. Only 1 spot(s) available"
        repos[2].send_booking_confirmation.assert_not_called()

    def test_concurrent_duplicate_booking(self, booking_service, repos):
        repos[0].reserve.side_effect = sqlite3.IntegrityError("UNIQUE constraint failed")

        with pytest.raises(ConflictError) as exc_info:
            booking_service.book_event(1, "e1")

        assert exc_info.value.message == "You already have a booking for this event"

    def test_email_failure_does_not_fail_booking(self, booking_service, repos):
        repos[2].send_booking_confirmation.side_effect = RuntimeError("smtp down")

        assert booking_service.book_event(1, "e1")["id"] == "b1"

    def test_other_users_booking_is_hidden(self, booking_service, repos):
        with pytest.raises(NotFoundError):
            booking_service.get_booking("b1", user_id=2)

        assert booking_service.get_booking("b1", user_id=1)["id"] == "b1"


class TestProgressService:
    """Test ProgressService completion math and access rules."""

    @pytest.fixture
    def repos(self):
        course_progress_repo = Mock()
        course_progress_repo.get.return_value = {
            "completed_lessons": ["lesson-1"],
            "completed_at": None,
        }
        course_progress_repo.save.side_effect = (
            lambda user_id, course_id, completed, percentage, completed_at: {
                "completed_lessons": completed,
                "progress_percentage": percentage,
                "completed_at": completed_at,
            }
        )
        lesson_progress_repo = Mock()
        course_repo = Mock()
        course_repo.get_by_id.return_value = {"id": "c1"}
        course_repo.get_lessons.return_value = LESSONS
        order_repo = Mock()
        order_repo.has_purchased_course.return_value = True
        return course_progress_repo, lesson_progress_repo, course_repo, order_repo

    @pytest.fixture
    def progress_service(self, repos):
        return ProgressService(*repos)

    @pytest.mark.parametrize("completed,total,expected", [
        (1, 3, 33),
        (2, 3, 67),
        (0, 0, 0),
        (5, 4, 100),
    ])
    def test_calculate_percentage(self, completed, total, expected):
        assert calculate_percentage(completed, total) == expected

    def test_completion_lookups(self, progress_service, repos):
        repos[0].get.return_value = {"completed_lessons": ["lesson-1"], "progress_percentage": 25}

        assert progress_service.is_lesson_completed(1, "c1", "lesson-1") is True
        assert progress_service.is_lesson_completed(1, "c1", "lesson-2") is False
        assert progress_service.get_completion_percentage(1, "c1") == 25

        repos[0].get.return_value = None
        assert progress_service.is_lesson_completed(1, "c1", "lesson-1") is False
        assert progress_service.get_completion_percentage(1, "c1") == 0

    def test_mark_lesson_complete(self, progress_service):
        progress = progress_service.mark_lesson_complete(1, "c1", "lesson-2")

        assert progress["completed_lessons"] == ["lesson-1", "lesson-2"]
        assert progress["progress_percentage"] == 50
        assert progress["completed_at"] is None

    def test_completing_last_lesson_sets_completed_at(self, progress_service, repos):
        repos[0].get.return_value = {
            "completed_lessons": ["lesson-1", "lesson-2", "lesson-3"],
            "completed_at": None,
        }

        progress = progress_service.mark_lesson_complete(1, "c1", "lesson-4")

        assert progress["progress_percentage"] == 100
        assert progress["completed_at"] is not None

    def test_mark_complete_twice_is_idempotent(self, progress_service):
        progress = progress_service.mark_lesson_complete(1, "c1", "lesson-1")

        assert progress["completed_lessons"] == ["lesson-1"]
        assert progress["progress_percentage"] == 25

    def test_unknown_lesson_rejected(self, progress_service):
        with pytest.raises(NotFoundError):
            progress_service.mark_lesson_complete(1, "c1", "lesson-99")

    def test_course_without_curriculum(self, progress_service, repos):
        repos[2].get_lessons.return_value = []

        progress = progress_service.mark_lesson_complete(1, "c1", "anything")

        assert progress["progress_percentage"] == 100

    def test_explicit_total_must_be_positive(self, progress_service):
        with pytest.raises(ValidationError):
            progress_service.mark_lesson_complete(1, "c1", "lesson-2", total_lessons=0)

    def test_mark_incomplete(self, progress_service):
        progress = progress_service.mark_lesson_incomplete(1, "c1", "lesson-1")

        assert progress["completed_lessons"] == []
        assert progress["progress_percentage"] == 0

    def test_mark_incomplete_without_progress(self, progress_service, repos):
        repos[0].get.return_value = None

        assert progress_service.mark_lesson_incomplete(1, "c1", "lesson-1") is None

    def test_access_requires_purchase(self, progress_service, repos):
        repos[3].has_purchased_course.return_value = False

        with pytest.raises(AuthorizationError):
            progress_service.start_lesson(1, "c1", "lesson-1")

    def test_admin_skips_purchase_check(self, progress_service, repos):
        repos[3].has_purchased_course.return_value = False
        repos[1].get_or_create.return_value = ({"lesson_id": "lesson-1", "attempts": 1}, True)

        record, created = progress_service.start_lesson(1, "c1", "lesson-1", is_admin=True)

        assert created is True
        assert record["attempts"] == 1
        repos[1].touch.assert_not_called()

    def test_resume_lesson(self, progress_service, repos):
        repos[1].get_or_create.return_value = ({"lesson_id": "lesson-1", "attempts": 1}, False)
        repos[1].touch.return_value = {"lesson_id": "lesson-1", "attempts": 2}

        record, created = progress_service.start_lesson(1, "c1", "lesson-1")

        assert created is False
        assert record["attempts"] == 2
        repos[1].touch.assert_called_once_with(1, "c1", "lesson-1")

    def test_bulk_course_progress(self, progress_service, repos):
        repos[0].get_many.return_value = [
            {"course_id": "c1", "progress_percentage": 50},
            {"course_id": "c3", "progress_percentage": 100},
        ]

        progress = progress_service.get_bulk_course_progress(1, ["c1", "c2", "c3"])

        assert set(progress) == {"c1", "c3"}
        assert progress["c3"]["progress_percentage"] == 100
        repos[0].get_many.assert_called_once_with(1, ["c1", "c2", "c3"])

    def test_bulk_course_progress_without_ids(self, progress_service, repos):
        assert progress_service.get_bulk_course_progress(1, []) == {}
        repos[0].get_many.assert_not_called()

    def test_record_time_before_start(self, progress_service, repos):
        repos[1].get.return_value = None

        with pytest.raises(NotFoundError) as exc_info:
            progress_service.record_time(1, "c1", "lesson-1", 30)

        assert exc_info.value.message == LESSON_NOT_STARTED

    @pytest.mark.parametrize("seconds", [-1, 1.5, True])
    def test_record_time_validates_seconds(self, progress_service, seconds):
        with pytest.raises(ValidationError):
            progress_service.record_time(1, "c1", "lesson-1", seconds)

    def test_complete_lesson_updates_course_progress(self, progress_service, repos):
        repos[1].get.return_value = {"lesson_id": "lesson-2", "completed": 0}
        repos[1].mark_completed.return_value = {"lesson_id": "lesson-2", "completed": 1, "score": 90}

        record, newly_completed = progress_service.complete_lesson(1, "c1", "lesson-2", score=90)

        assert newly_completed is True
        assert record["score"] == 90
        saved = repos[0].save.call_args.args
        assert saved[2] == ["lesson-1", "lesson-2"]

    def test_complete_already_completed_lesson(self, progress_service, repos):
        existing = {"lesson_id": "lesson-1", "completed": 1}
        repos[1].get.return_value = existing

        record, newly_completed = progress_service.complete_lesson(1, "c1", "lesson-1")

        assert newly_completed is False
        assert record is existing
        repos[0].save.assert_not_called()

    def test_score_out_of_range(self, progress_service):
        with pytest.raises(ValidationError):
            progress_service.complete_lesson(1, "c1", "lesson-1", score=101)

    def test_progress_stats(self, progress_service, repos):
        repos[0].list_for_user.return_value = [
            {"completed_lessons": ["a", "b"], "progress_percentage": 100, "completed_at": "2025-01-01"},
            {"completed_lessons": ["c"], "progress_percentage": 25, "completed_at": None},
            {"completed_lessons": [], "progress_percentage": 0, "completed_at": None},
        ]

        assert progress_service.get_progress_stats(1) == {
            "total_courses": 3,
            "completed_courses": 1,
            "in_progress_courses": 1,
            "total_lessons_completed": 3,
            "average_progress": 42,
        }

    def test_aggregated_stats_and_current_lesson(self, progress_service, repos):
        repos[1].list_for_course.return_value = [
            {"lesson_id": "lesson-1", "completed": 1, "time_spent_seconds": 120,
             "attempts": 3, "score": 80, "last_accessed_at": "2025-01-01 10:00:00"},
            {"lesson_id": "lesson-2", "completed": 0, "time_spent_seconds": 30,
             "attempts": 1, "score": None, "last_accessed_at": "2025-01-02 10:00:00"},
        ]

        stats = progress_service.get_aggregated_stats(1, "c1")

        assert stats["total_time_seconds"] == 150
        assert stats["average_score"] == 80.0
        assert stats["difficult_lessons"] == ["lesson-1"]
        assert progress_service.get_current_lesson(1, "c1")["lesson_id"] == "lesson-2"


class TestSearchService:
    """Test SearchService validation and merging."""

    @pytest.fixture
    def mock_search_repo(self):
        repo = Mock()
        repo.search_courses.return_value = (
            [{"id": "c1", "title": "Yoga", "price": 10, "relevance": 0.4}], 1
        )
        repo.search_products.return_value = (
            [{"id": "p1", "title": "Yoga mat guide", "price": 5, "relevance": 0.9}], 1
        )
        repo.search_events.return_value = (
            [{"id": "e1", "title": "Yoga day", "price": 20, "relevance": 0.6,
              "event_date": "2030-05-01 10:00:00"}], 1
        )
        return repo

    @pytest.fixture
    def search_service(self, mock_search_repo):
        return SearchService(mock_search_repo)

    @pytest.mark.parametrize("options,field", [
        (SearchOptions(type="video"), "type"),
        (SearchOptions(limit=0), "limit"),
        (SearchOptions(limit=51), "limit"),
        (SearchOptions(offset=-1), "offset"),
        (SearchOptions(min_price=-5), "min_price"),
        (SearchOptions(min_price=50, max_price=10), "min_price"),
        (SearchOptions(query="x" * 201), "q"),
    ])
    def test_invalid_options(self, search_service, options, field):
        with pytest.raises(ValidationError) as exc_info:
            search_service.search(options)

        assert exc_info.value.message == "Invalid search parameters"
        assert field in exc_info.value.fields

    def test_unified_search_merges_by_relevance(self, search_service, mock_search_repo):
        result = search_service.search(SearchOptions(query="yoga", limit=2, offset=1))

        assert [item["id"] for item in result["items"]] == ["e1", "c1"]
        assert result["total"] == 3
        assert result["has_more"] is False
        call = mock_search_repo.search_courses.call_args
        assert call.kwargs["limit"] == 3
        assert call.kwargs["offset"] == 0

    def test_single_type_search(self, search_service, mock_search_repo):
        result = search_service.search(SearchOptions(query="yoga", type="course", level="beginner"))

        assert [item["type"] for item in result["items"]] == ["course"]
        mock_search_repo.search_products.assert_not_called()
        assert mock_search_repo.search_courses.call_args.kwargs["level"] == "beginner"

    def test_results_are_formatted_for_locale(self, search_service):
        result = search_service.search(SearchOptions(query="yoga", type="event", locale="es"))

        event = result["items"][0]
        assert event["type"] == "event"
        assert "20,00" in event["price_formatted"]
        assert event["event_date_formatted"]

    def test_short_suggestion_query(self, search_service, mock_search_repo):
        assert search_service.get_search_suggestions("y") == []
        mock_search_repo.suggest_titles.assert_not_called()

    def test_suggestions_are_deduplicated(self, search_service, mock_search_repo):
        mock_search_repo.suggest_titles.return_value = ["Yoga", "yoga", "Yoga Nidra"]

        assert search_service.get_search_suggestions("yo", limit=5) == ["Yoga", "Yoga Nidra"]

    def test_price_range_rejects_unknown_type(self, search_service):
        with pytest.raises(ValidationError):
            search_service.get_price_range("video")


class TestTranslationService:

    @pytest.fixture
    def mock_translation_repo(self):
        repo = Mock()
        repo.count.side_effect = lambda content_type: {
            "course": {"total": 4, "translated": 3},
            "product": {"total": 2, "translated": 0},
            "event": {"total": 0, "translated": 0},
        }[content_type]
        return repo

    def test_statistics(self, mock_translation_repo):
        stats = TranslationService(mock_translation_repo).get_translation_statistics()

        assert stats["course"] == {"total": 4, "translated": 3, "percentage": 75}
        assert stats["event"]["percentage"] == 0
        assert stats["overall_completion"] == 50

    @pytest.mark.parametrize("title,description,complete,percentage", [
        ("Yoga", "Estiramientos", True, 100),
        ("Yoga", "  ", False, 50),
        (None, None, False, 0),
    ])
    def test_completion(self, title, description, complete, percentage):
        assert is_translation_complete(title, description) is complete
        assert calculate_completion_percentage(title, description) == percentage

    def test_update_clears_blank_fields(self, mock_translation_repo):
        mock_translation_repo.update.return_value = True

        TranslationService(mock_translation_repo).update_translation("course", "c1", " Yoga ", "")

        mock_translation_repo.update.assert_called_once_with("course", "c1", "Yoga", None, None)

    def test_update_unknown_item(self, mock_translation_repo):
        mock_translation_repo.update.return_value = False

        with pytest.raises(NotFoundError) as exc_info:
            TranslationService(mock_translation_repo).update_translation("product", "p9", "x", "y")

        assert exc_info.value.message == "Product not found"

    def test_unknown_content_type(self, mock_translation_repo):
        with pytest.raises(ValidationError):
            TranslationService(mock_translation_repo).list_translations("lesson")


class TestUploadService:
    """Test UploadService against a real local storage directory."""

    @pytest.fixture
    def storage(self, tmp_path):
        return LocalStorage(StorageConfig(
            backend="local",
            base_path=tmp_path,
            public_url="https://shop.example.com",
        ))

    @pytest.fixture
    def upload_service(self, storage):
        return UploadService(storage)

    def test_generate_file_key(self):
        key = generate_file_key("My Course (v2).PDF")

        assert re.fullmatch(r"My-Course--v2--[0-9a-f-]{36}\.pdf", key)

    def test_generate_file_key_strips_directories(self):
        key = generate_file_key("../../etc/passwd")

        assert key.startswith("passwd-")
        assert "/" not in key

    @pytest.mark.parametrize("size,expected", [
        (512, "512 B"),
        (2048, "2.00 KB"),
        (5 * 1024 * 1024, "5.00 MB"),
    ])
    def test_format_file_size(self, size, expected):
        assert format_file_size(size) == expected

    def test_upload_file(self, upload_service, storage, tmp_path, run_async):
        result = run_async(upload_service.upload_file(b"%PDF-1.4", "guide.pdf", "application/pdf"))

        assert result["folder"] == "products"
        assert result["size"] == 8
        assert result["url"] == f"https://shop.example.com/uploads/products/{result['key']}"
        assert (tmp_path / "products" / result["key"]).read_bytes() == b"%PDF-1.4"
        assert upload_service.file_exists(result["key"])

    @pytest.mark.parametrize("content,filename,content_type,message", [
        (b"x", "", "application/pdf", "File name is required"),
        (b"x", "run.sh", "text/x-shellscript", "File type text/x-shellscript is not allowed"),
        (b"", "guide.pdf", "application/pdf", "File is empty"),
    ])
    def test_invalid_uploads(self, upload_service, run_async, content, filename, content_type, message):
        with pytest.raises(ValidationError) as exc_info:
            run_async(upload_service.upload_file(content, filename, content_type))

        assert exc_info.value.message == message

    def test_file_too_large(self, upload_service, run_async):
        with pytest.raises(ValidationError) as exc_info:
            run_async(upload_service.upload_file(b"x" * 20, "a.pdf", "application/pdf", max_size=10))

        assert exc_info.value.message.startswith("File size exceeds maximum allowed size")

    def test_check_size(self, monkeypatch):
        import app.config as config
        monkeypatch.setattr(config, "MAX_UPLOAD_SIZE", 2 * 1024 * 1024)

        UploadService.check_size(2 * 1024 * 1024)
        with pytest.raises(ValidationError) as exc_info:
            UploadService.check_size(2 * 1024 * 1024 + 1)

        assert exc_info.value.message == "File size exceeds maximum allowed size of 2MB"

    def test_batch_is_validated_before_storing(self, upload_service, tmp_path, run_async):
        files = [
            (b"ok", "a.pdf", "application/pdf"),
            (b"bad", "b.exe", "application/x-msdownload"),
        ]

        with pytest.raises(ValidationError):
            run_async(upload_service.upload_files(files))

        assert not (tmp_path / "products").exists() or not any((tmp_path / "products").iterdir())

    def test_storage_failure(self, run_async):
        from app.infrastructure.storage import StorageError

        async def failing_upload(*args, **kwargs):
            raise StorageError("bucket gone")

        storage = Mock(backend="s3")
        storage.upload = failing_upload
        with pytest.raises(ExternalServiceError):
            run_async(UploadService(storage).upload_file(b"x", "a.pdf", "application/pdf"))

    def test_storage_info(self, upload_service):
        info = upload_service.get_storage_info()

        assert info["backend"] == "local"
        assert "application/pdf" in info["allowed_types"]


class TestDownloadService:
    """Test DownloadService purchase and limit checks."""

    @pytest.fixture
    def repos(self):
        product_repo = Mock()
        product_repo.get_by_id.return_value = {
            "id": "p1",
            "file_key": "guide.pdf",
            "file_folder": None,
            "download_limit": 3,
        }
        product_repo.count_downloads.return_value = 1
        order_repo = Mock()
        order_repo.get_product_purchase.return_value = {"order_id": "o1", "purchased_at": "2025-01-01"}
        uploads = Mock()
        uploads.get_download_url.return_value = "https://cdn.test/products/guide.pdf?sig=1"
        return product_repo, order_repo, uploads

    @pytest.fixture
    def download_service(self, repos):
        return DownloadService(*repos)

    def test_download_logs_and_counts(self, download_service, repos):
        product_repo, _, uploads = repos
        product_repo.count_downloads.side_effect = [1, 2]

        result = download_service.get_download(1, "p1", "127.0.0.1", "pytest")

        assert result == {"url": "https://cdn.test/products/guide.pdf?sig=1", "downloads_remaining": 1}
        uploads.get_download_url.assert_called_once_with("guide.pdf", "products")
        product_repo.log_download.assert_called_once_with(
            1, "p1", "o1", "127.0.0.1", "pytest", limit=3
        )

    def test_limit_reached(self, download_service, repos):
        repos[0].count_downloads.return_value = 3

        with pytest.raises(AuthorizationError) as exc_info:
            download_service.get_download(1, "p1")

        assert exc_info.value.message == "Download limit of 3 reached for this product"
        repos[0].log_download.assert_not_called()

    def test_last_download_taken_by_another_request(self, download_service, repos):
        repos[0].count_downloads.return_value = 2
        repos[0].log_download.return_value = False

        with pytest.raises(AuthorizationError) as exc_info:
            download_service.get_download(1, "p1")

        assert exc_info.value.message == "Download limit of 3 reached for this product"

    def test_unlimited_downloads(self, download_service, repos):
        repos[0].get_by_id.return_value["download_limit"] = None
        repos[0].count_downloads.return_value = 40

        assert download_service.get_download(1, "p1")["downloads_remaining"] is None

    def test_not_purchased(self, download_service, repos):
        repos[1].get_product_purchase.return_value = None

        with pytest.raises(AuthorizationError):
            download_service.get_download(1, "p1")

    def test_product_without_file(self, download_service, repos):
        repos[0].get_by_id.return_value["file_key"] = None

        with pytest.raises(ValidationError):
            download_service.get_download(1, "p1")


class TestCatalogService:

    @pytest.fixture
    def repos(self):
        course_repo = Mock()
        product_repo = Mock()
        event_repo = Mock()
        return course_repo, product_repo, event_repo

    def test_product_hides_storage_location(self, repos):
        repos[1].get_by_id.return_value = {
            "id": "p1",
            "title": "Guide",
            "title_es": "Guía",
            "description": "PDF",
            "description_es": None,
            "price": 19.5,
            "file_key": "guide.pdf",
            "file_folder": "products",
        }

        product = CatalogService(*repos).get_product("p1", "es")

        assert product["title"] == "Guía"
        assert product["description"] == "PDF"
        assert "file_key" not in product
        assert "file_folder" not in product
        assert "19,50" in product["price_formatted"]

    def test_missing_course(self, repos):
        repos[0].get_by_id.return_value = None

        with pytest.raises(NotFoundError) as exc_info:
            CatalogService(*repos).get_course("nope", "en")

        assert exc_info.value.message == "Course not found"

    @pytest.mark.parametrize("limit,offset", [(0, 0), (51, 0), (10, -1)])
    def test_bad_pagination(self, repos, limit, offset):
        with pytest.raises(ValidationError):
            CatalogService(*repos).list_products("en", limit=limit, offset=offset)

    def test_sold_out_event(self, repos):
        repos[2].list_upcoming.return_value = ([{
            "id": "e1",
            "title": "Retreat",
            "price": 100,
            "event_date": "2030-03-01 09:00:00",
            "available_spots": 0,
        }], 1)

        result = CatalogService(*repos).list_events("en")

        assert result["items"][0]["is_sold_out"] is True
        assert result["has_more"] is False
