"""Event booking routes."""
from fastapi import APIRouter, Request
from pydantic import BaseModel

from ..database import get_db
from ..dependencies import get_locale, require_user
from ..i18n import t
from .deps import get_booking_service

router = APIRouter(prefix="/api", tags=["bookings"])


class BookingInput(BaseModel):
    attendees: int = 1


@router.post("/events/{event_id}/book", status_code=201)
def book_event(event_id: str, request: Request, data: BookingInput | None = None):
    """Reserve places at an event; defaults to one attendee."""
    user = require_user(request)
    attendees = data.attendees if data else 1
    booking = get_booking_service(get_db()).book_event(user["id"], event_id, attendees)
    return {"success": True, "booking": booking, "message": t(get_locale(request), "bookings.booked")}


@router.get("/bookings")
def list_bookings(request: Request):
    user = require_user(request)
    return {"success": True, "bookings": get_booking_service(get_db()).get_user_bookings(user["id"])}


@router.get("/bookings/{booking_id}")
def get_booking(booking_id: str, request: Request):
    user = require_user(request)
    return {"success": True, "booking": get_booking_service(get_db()).get_booking(booking_id, user["id"])}
