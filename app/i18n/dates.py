"""Locale-aware date and time formatting (Babel/CLDR).

Every formatter accepts a ``datetime``, a ``date`` or an ISO 8601 string.
Naive datetimes are treated as UTC, which is how the database stores them.
"""
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union

from babel import dates as babel_dates

from . import DEFAULT_LOCALE, is_valid_locale, t

DateLike = Union[datetime, date, str]


def _locale(locale: str) -> str:
    return locale if is_valid_locale(locale) else DEFAULT_LOCALE


def to_datetime(value: DateLike) -> datetime:
    """Coerce a date-like value to an aware UTC datetime."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _now() -> datetime:
    return datetime.now(timezone.utc)


def format_date_short(value: DateLike, locale: str = DEFAULT_LOCALE) -> str:
    """Numeric date with a four digit year ("11/2/2025", "2/11/2025")."""
    return babel_dates.format_skeleton("yMd", to_datetime(value), locale=_locale(locale))


def format_date_medium(value: DateLike, locale: str = DEFAULT_LOCALE) -> str:
    """Abbreviated month ("Nov 2, 2025")."""
    return babel_dates.format_skeleton("yMMMd", to_datetime(value), locale=_locale(locale))


def format_date_long(value: DateLike, locale: str = DEFAULT_LOCALE) -> str:
    """Full month name ("November 2, 2025", "2 de noviembre de 2025")."""
    return babel_dates.format_skeleton("yMMMMd", to_datetime(value), locale=_locale(locale))


def format_date_full(value: DateLike, locale: str = DEFAULT_LOCALE) -> str:
    """Date with weekday ("Sunday, November 2, 2025")."""
    return babel_dates.format_date(to_datetime(value), format="full", locale=_locale(locale))


def format_time(value: DateLike, locale: str = DEFAULT_LOCALE) -> str:
    """Hours and minutes in the locale's clock ("2:30 PM", "14:30")."""
    return babel_dates.format_time(to_datetime(value), format="short", locale=_locale(locale))


def format_time_with_seconds(value: DateLike, locale: str = DEFAULT_LOCALE) -> str:
    return babel_dates.format_time(to_datetime(value), format="medium", locale=_locale(locale))


def _join_datetime(date_part: str, time_part: str, width: str, locale: str) -> str:
    pattern = babel_dates.get_datetime_format(width, locale=locale)
    return pattern.replace("{1}", date_part).replace("{0}", time_part)


def format_datetime(value: DateLike, locale: str = DEFAULT_LOCALE) -> str:
    """Medium date and short time ("Nov 2, 2025, 2:30 PM")."""
    locale = _locale(locale)
    return _join_datetime(
        format_date_medium(value, locale), format_time(value, locale), "medium", locale
    )


def format_datetime_long(value: DateLike, locale: str = DEFAULT_LOCALE) -> str:
    """Full date and short time."""
    locale = _locale(locale)
    return _join_datetime(
        format_date_full(value, locale), format_time(value, locale), "long", locale
    )


def format_relative_time(
    value: DateLike,
    locale: str = DEFAULT_LOCALE,
    now: Optional[datetime] = None,
) -> str:
    """Distance from now in the largest whole unit ("2 hours ago", "in 3 days")."""
    delta = to_datetime(value) - to_datetime(now or _now())
    return babel_dates.format_timedelta(
        delta,
        threshold=1,
        add_direction=True,
        locale=_locale(locale),
    )


def format_month_year(value: DateLike, locale: str = DEFAULT_LOCALE) -> str:
    """Month and year ("November 2025", "noviembre de 2025")."""
    return babel_dates.format_skeleton("yMMMM", to_datetime(value), locale=_locale(locale))


def format_weekday(value: DateLike, locale: str = DEFAULT_LOCALE) -> str:
    return babel_dates.format_date(to_datetime(value), format="EEEE", locale=_locale(locale))


def format_date_range(start: DateLike, end: DateLike, locale: str = DEFAULT_LOCALE) -> str:
    """Collapse a date range on its shared parts ("Nov 2 – 5, 2025")."""
    return babel_dates.format_interval(
        to_datetime(start), to_datetime(end), skeleton="yMMMd", locale=_locale(locale)
    )


def format_duration(minutes: int, locale: str = DEFAULT_LOCALE) -> str:
    """Compact duration ("1h 30m", "45m")."""
    minutes = max(0, int(minutes))
    hours, remainder = divmod(minutes, 60)
    if hours and remainder:
        return t(locale, "duration.hours_minutes", {"hours": hours, "minutes": remainder})
    if hours:
        return t(locale, "duration.hours", {"count": hours})
    return t(locale, "duration.minutes", {"count": remainder})


def is_today(value: DateLike, now: Optional[datetime] = None) -> bool:
    return to_datetime(value).date() == to_datetime(now or _now()).date()


def is_past(value: DateLike, now: Optional[datetime] = None) -> bool:
    return to_datetime(value) < to_datetime(now or _now())


def is_future(value: DateLike, now: Optional[datetime] = None) -> bool:
    return to_datetime(value) > to_datetime(now or _now())


def days_between(start: DateLike, end: DateLike) -> int:
    """Whole days between two moments, rounded, order independent."""
    delta: timedelta = to_datetime(end) - to_datetime(start)
    return round(abs(delta.total_seconds()) / 86400)
