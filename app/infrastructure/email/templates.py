"""Localized email templates.

Each email has an HTML and a plain-text Jinja2 template in
``app/templates/email``; all copy comes from the ``email.*`` keys of the
translation catalogs.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ... import config
from ...i18n import lookup, t

TEMPLATES_DIR = Path(__file__).resolve().parent.parent.parent / "templates" / "email"

STAR = "★"

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


@dataclass
class EmailContent:
    subject: str
    html: str
    text: str


def stars(rating: int) -> str:
    """Rating as a row of stars, clamped to 0-5."""
    return STAR * max(0, min(5, int(rating)))


def render(template: str, context: dict[str, Any]) -> tuple[str, str]:
    """Render the HTML and text variants of a template."""
    html = _env.get_template(f"{template}.html").render(**context)
    text = _env.get_template(f"{template}.txt").render(**context).strip() + "\n"
    return html, text


def _common(locale: str, name: str, subject: str) -> dict[str, Any]:
    app_name = t(locale, "common.app_name")
    return {
        "locale": locale,
        "subject": subject,
        "greeting": t(locale, "email.greeting", {"name": name}),
        "signature": t(locale, "email.signature", {"app_name": app_name}),
        "footer": t(locale, "email.footer", {
            "year": datetime.now(timezone.utc).year,
            "app_name": app_name,
        }),
        "visit_website": t(locale, "email.visit_website"),
        "site_url": config.PUBLIC_URL,
    }


def review_approved_email(
    locale: str,
    user_name: str,
    course_title: str,
    rating: int,
    comment: Optional[str],
    review_url: str
) -> EmailContent:
    subject = t(locale, "email.review_update_subject", {"course_title": course_title})
    context = {
        **_common(locale, user_name, subject),
        "heading": t(locale, "email.review_approved_heading"),
        "body": t(locale, "email.review_approved_body", {"course_title": course_title}),
        "your_rating": t(locale, "email.your_rating", {"rating": rating}),
        "stars": stars(rating),
        "comment": comment,
        "cta": t(locale, "email.review_approved_cta"),
        "review_url": review_url,
    }
    html, text = render("review_approved", context)
    return EmailContent(subject=subject, html=html, text=text)


def review_rejected_email(
    locale: str,
    user_name: str,
    course_title: str,
    rating: int,
    comment: Optional[str]
) -> EmailContent:
    subject = t(locale, "email.review_update_subject", {"course_title": course_title})
    guidelines = lookup(locale, "email.review_guidelines")
    context = {
        **_common(locale, user_name, subject),
        "heading": t(locale, "email.review_rejected_heading"),
        "body": t(locale, "email.review_rejected_body", {"course_title": course_title}),
        "your_rating": t(locale, "email.your_rating", {"rating": rating}),
        "stars": stars(rating),
        "comment": comment,
        "guidelines_heading": t(locale, "email.review_rejected_guidelines"),
        "guidelines": guidelines if isinstance(guidelines, list) else [],
        "cta": t(locale, "email.review_rejected_cta"),
        "courses_url": f"{config.PUBLIC_URL}/courses",
    }
    html, text = render("review_rejected", context)
    return EmailContent(subject=subject, html=html, text=text)


def welcome_email(locale: str, user_name: str, verify_url: Optional[str] = None) -> EmailContent:
    app_name = t(locale, "common.app_name")
    subject = t(locale, "email.welcome_subject", {"app_name": app_name})
    context = {
        **_common(locale, user_name, subject),
        "heading": t(locale, "email.welcome_heading", {"name": user_name}),
        "body": t(locale, "email.welcome_body"),
        "verify_url": verify_url,
        "verify_text": t(locale, "email.welcome_verify"),
        "verify_cta": t(locale, "email.welcome_verify_cta"),
    }
    html, text = render("welcome", context)
    return EmailContent(subject=subject, html=html, text=text)


def password_reset_email(locale: str, user_name: str, reset_url: str, expires_minutes: int) -> EmailContent:
    app_name = t(locale, "common.app_name")
    subject = t(locale, "email.password_reset_subject", {"app_name": app_name})
    context = {
        **_common(locale, user_name, subject),
        "heading": t(locale, "email.password_reset_heading"),
        "body": t(locale, "email.password_reset_body", {"minutes": expires_minutes}),
        "cta": t(locale, "email.password_reset_cta"),
        "reset_url": reset_url,
        "ignore": t(locale, "email.password_reset_ignore"),
    }
    html, text = render("password_reset", context)
    return EmailContent(subject=subject, html=html, text=text)


def booking_confirmation_email(
    locale: str,
    user_name: str,
    event_title: str,
    event_date: str,
    city: str,
    attendees: int,
    total: str
) -> EmailContent:
    subject = t(locale, "email.booking_subject", {"event_title": event_title})
    context = {
        **_common(locale, user_name, subject),
        "heading": t(locale, "email.booking_heading"),
        "body": t(locale, "email.booking_body", {
            "event_title": event_title,
            "event_date": event_date,
            "city": city,
        }),
        "details": t(locale, "email.booking_details", {"attendees": attendees, "total": total}),
        "cta": t(locale, "email.booking_cta"),
        "bookings_url": f"{config.PUBLIC_URL}/account/bookings",
    }
    html, text = render("booking_confirmation", context)
    return EmailContent(subject=subject, html=html, text=text)
