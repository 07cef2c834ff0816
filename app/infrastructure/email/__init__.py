"""Email transport and templates."""
from .sender import EmailSender, EmailResult, is_email_configured, NOT_CONFIGURED
from .templates import (
    EmailContent,
    booking_confirmation_email,
    password_reset_email,
    review_approved_email,
    review_rejected_email,
    welcome_email,
    stars,
)

__all__ = [
    "EmailSender",
    "EmailResult",
    "is_email_configured",
    "NOT_CONFIGURED",
    "EmailContent",
    "booking_confirmation_email",
    "password_reset_email",
    "review_approved_email",
    "review_rejected_email",
    "welcome_email",
    "stars",
]
