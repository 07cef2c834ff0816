"""Booking repository - event reservations and the seats they hold.

A booking takes ``attendees`` spots from its event. The decrement and the
insert share one transaction, and the decrement only applies while enough
spots remain, so concurrent bookings can never oversell an event.
"""
import sqlite3
from typing import Optional

from .base import Repository

_DETAIL_SELECT = """
    SELECT b.*, e.title AS event_title, e.title_es AS event_title_es, e.slug AS event_slug,
           e.event_date, e.venue_name, e.venue_city, e.venue_country,
           u.email AS user_email, u.name AS user_name, u.preferred_language AS user_language
    FROM bookings b
    JOIN events e ON e.id = b.event_id
    JOIN users u ON u.id = b.user_id
"""


class BookingRepository(Repository):
    """Repository for the bookings table."""

    def reserve(self, user_id: int, event_id: str, attendees: int, total_price: float) -> Optional[str]:
        """Take `attendees` spots and record a pending booking.

        Returns:
            Booking UUID, or None if the event has fewer spots left

        Raises:
            sqlite3.IntegrityError: The user already booked this event
        """
        booking_id = self._new_id()
        now = self._now()
        try:
            cursor = self._execute(
                """UPDATE events SET available_spots = available_spots - ?, updated_at = ?
                   WHERE id = ? AND available_spots >= ?""",
                (attendees, now, event_id, attendees)
            )
            if cursor.rowcount == 0:
                self._rollback()
                return None

            self._execute(
                """INSERT INTO bookings
                   (id, user_id, event_id, status, attendees, total_price, created_at, updated_at)
                   VALUES (?, ?, ?, 'pending', ?, ?, ?, ?)""",
                (booking_id, user_id, event_id, attendees, total_price, now, now)
            )
        except sqlite3.Error:
            self._rollback()
            raise

        self._commit()
        return booking_id

    def get_by_id(self, booking_id: str) -> dict | None:
        return self._fetchone(f"{_DETAIL_SELECT} WHERE b.id = ?", (booking_id,))

    def get_for_event(self, user_id: int, event_id: str) -> dict | None:
        """The user's booking of an event, if any."""
        return self._fetchone(
            "SELECT * FROM bookings WHERE user_id = ? AND event_id = ?",
            (user_id, event_id)
        )

    def list_for_user(self, user_id: int) -> list[dict]:
        """Bookings of a user, soonest event first."""
        return self._fetchall(
            f"{_DETAIL_SELECT} WHERE b.user_id = ? ORDER BY e.event_date ASC, b.created_at ASC",
            (user_id,)
        )
