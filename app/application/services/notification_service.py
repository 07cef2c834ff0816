"""Notification service - transactional emails in the recipient's language."""
from typing import Optional

from ... import config
from ...i18n import DEFAULT_LOCALE, is_valid_locale
from ...i18n.content import get_localized_field
from ...i18n.currency import format_currency
from ...i18n.dates import format_datetime_long
from ...infrastructure.email import (
    EmailResult,
    EmailSender,
    booking_confirmation_email,
    password_reset_email,
    review_approved_email,
    review_rejected_email,
    welcome_email,
)


def _recipient_locale(language: Optional[str]) -> str:
    return language if is_valid_locale(language) else DEFAULT_LOCALE


def _course_title(review: dict, locale: str) -> str:
    course = {"title": review.get("course_title"), "title_es": review.get("course_title_es")}
    return get_localized_field(course, "title", locale) or ""


class NotificationService:
    """Builds and sends notification emails.

    Review dicts are the detailed rows returned by ``ReviewRepository``
    (they carry ``user_email``, ``user_name``, ``user_language`` and the
    course titles).
    """

    def __init__(self, sender: Optional[EmailSender] = None):
        self.sender = sender or EmailSender()

    def send_review_approval(self, review: dict) -> EmailResult:
        locale = _recipient_locale(review.get("user_language"))
        content = review_approved_email(
            locale=locale,
            user_name=review.get("user_name") or "",
            course_title=_course_title(review, locale),
            rating=review["rating"],
            comment=review.get("comment"),
            review_url=f"{config.PUBLIC_URL}/courses/{review['course_id']}#review-{review['id']}",
        )
        return self.sender.send(review["user_email"], content.subject, content.html, content.text)

    def send_review_rejection(self, review: dict) -> EmailResult:
        locale = _recipient_locale(review.get("user_language"))
        content = review_rejected_email(
            locale=locale,
            user_name=review.get("user_name") or "",
            course_title=_course_title(review, locale),
            rating=review["rating"],
            comment=review.get("comment"),
        )
        return self.sender.send(review["user_email"], content.subject, content.html, content.text)

    def send_welcome(self, user: dict, verify_url: Optional[str] = None) -> EmailResult:
        locale = _recipient_locale(user.get("preferred_language"))
        content = welcome_email(locale, user.get("name") or "", verify_url)
        return self.sender.send(user["email"], content.subject, content.html, content.text)

    def send_password_reset(self, user: dict, reset_url: str, expires_minutes: int) -> EmailResult:
        locale = _recipient_locale(user.get("preferred_language"))
        content = password_reset_email(locale, user.get("name") or "", reset_url, expires_minutes)
        return self.sender.send(user["email"], content.subject, content.html, content.text)

    def send_booking_confirmation(self, booking: dict) -> EmailResult:
        """Booking dicts are the detailed rows returned by ``BookingRepository``."""
        locale = _recipient_locale(booking.get("user_language"))
        event = {"title": booking.get("event_title"), "title_es": booking.get("event_title_es")}
        content = booking_confirmation_email(
            locale=locale,
            user_name=booking.get("user_name") or "",
            event_title=get_localized_field(event, "title", locale) or "",
            event_date=format_datetime_long(booking["event_date"], locale),
            city=booking.get("venue_city") or "",
            attendees=booking["attendees"],
            total=format_currency(booking["total_price"], locale, config.CATALOG_CURRENCY),
        )
        return self.sender.send(booking["user_email"], content.subject, content.html, content.text)
