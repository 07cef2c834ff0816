"""Booking service - reserving places at in-person events.

Bookings start out pending; the seats are taken from the event at booking
time. The booker gets a confirmation email in their preferred language.
"""
import sqlite3
from typing import Optional

from ...errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    log_error,
)
from ...infrastructure.repositories import BookingRepository, EventRepository
from ...infrastructure.repositories.base import utc_now
from ...log import get_logger
from .notification_service import NotificationService

logger = get_logger(__name__)

MAX_ATTENDEES = 10

DUPLICATE_BOOKING = "You already have a booking for this event"


def validate_attendees(attendees) -> int:
    """Attendee counts are whole numbers from 1 to MAX_ATTENDEES."""
    if (
        isinstance(attendees, bool)
        or not isinstance(attendees, int)
        or not 1 <= attendees <= MAX_ATTENDEES
    ):
        raise ValidationError(
            f"Attendees must be between 1 and {MAX_ATTENDEES}",
            fields={"attendees": f"Must be an integer from 1 to {MAX_ATTENDEES}"}
        )
    return attendees


def insufficient_capacity(available: int) -> ConflictError:
    return ConflictError(f"Insufficient capacity. Only {available} spot(s) available")


class BookingService:
    """Service for event bookings.

    Responsibilities:
    - Capacity-checked booking of published, upcoming events
    - Listing a user's bookings
    - Booking confirmation email
    """

    def __init__(
        self,
        booking_repository: BookingRepository,
        event_repository: EventRepository,
        notification_service: Optional[NotificationService] = None
    ):
        self.booking_repo = booking_repository
        self.event_repo = event_repository
        self.notifications = notification_service

    def book_event(self, user_id: int, event_id: str, attendees: int = 1) -> dict:
        """Book `attendees` places at an event.

        Returns:
            The pending booking with event details

        Raises:
            ValidationError: Bad attendee count, unpublished or past event
            NotFoundError: Unknown event
            ConflictError: Already booked, or not enough spots left
        """
        validate_attendees(attendees)

        event = self.event_repo.get_by_id(event_id)
        if not event:
            raise NotFoundError("Event")
        if not event["is_published"]:
            raise ValidationError("Event is not available for booking")
        if event["event_date"] < utc_now():
            raise ValidationError("Cannot book past events")

        if self.booking_repo.get_for_event(user_id, event_id):
            raise ConflictError(DUPLICATE_BOOKING)
        if event["available_spots"] < attendees:
            raise insufficient_capacity(event["available_spots"])

        total_price = round(float(event["price"]) * attendees, 2)
        try:
            booking_id = self.booking_repo.reserve(user_id, event_id, attendees, total_price)
        except sqlite3.IntegrityError:
            raise ConflictError(DUPLICATE_BOOKING)

        if booking_id is None:
            # Spots were taken between the check above and the reservation
            current = self.event_repo.get_by_id(event_id)
            raise insufficient_capacity(current["available_spots"] if current else 0)

        logger.info(
            "event_booked",
            booking_id=booking_id,
            event_id=event_id,
            user_id=user_id,
            attendees=attendees,
        )
        booking = self.booking_repo.get_by_id(booking_id)
        self._notify(booking)
        return booking

    def get_user_bookings(self, user_id: int) -> list[dict]:
        return self.booking_repo.list_for_user(user_id)

    def get_booking(self, booking_id: str, user_id: int) -> dict:
        """One of the user's own bookings.

        Raises:
            NotFoundError: Unknown booking or someone else's
        """
        booking = self.booking_repo.get_by_id(booking_id)
        if not booking or booking["user_id"] != user_id:
            raise NotFoundError("Booking")
        return booking

    def _notify(self, booking: dict) -> None:
        """Send the confirmation email; failures never reach the caller."""
        if not self.notifications:
            return

        try:
            result = self.notifications.send_booking_confirmation(booking)
        except Exception as e:
            log_error(e, context="booking_notification", booking_id=booking["id"])
            return

        if not result.success:
            logger.warning(
                "booking_notification_not_sent",
                booking_id=booking["id"],
                error=result.error,
            )
