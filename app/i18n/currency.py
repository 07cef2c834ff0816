"""Locale-aware currency and number formatting (Babel/CLDR)."""
import math
import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from babel import Locale
from babel import numbers as babel_numbers

from . import DEFAULT_LOCALE, is_valid_locale

Number = Union[int, float, Decimal]

LOCALE_CURRENCY = {
    "en": "USD",
    "es": "MXN",
}

CURRENCIES = ("USD", "EUR", "GBP", "MXN", "CAD", "AUD")

_FRACTION_RE = re.compile(r"0(?:\.[0#]+)?")


def _locale(locale: str) -> str:
    return locale if is_valid_locale(locale) else DEFAULT_LOCALE


def get_default_currency(locale: str) -> str:
    return LOCALE_CURRENCY.get(_locale(locale), LOCALE_CURRENCY[DEFAULT_LOCALE])


def _with_fraction_digits(pattern: str, decimals: int) -> str:
    """Rewrite a CLDR pattern to show exactly `decimals` fraction digits."""
    fraction = "." + "0" * decimals if decimals > 0 else ""
    return _FRACTION_RE.sub("0" + fraction, pattern)


def format_currency(amount: Number, locale: str = DEFAULT_LOCALE, currency: Optional[str] = None) -> str:
    """Format an amount in the currency's standard precision.

    >>> format_currency(1234.5, "en", "USD")
    '$1,234.50'
    """
    locale = _locale(locale)
    return babel_numbers.format_currency(
        amount, currency or get_default_currency(locale), locale=locale
    )


def format_currency_with_decimals(
    amount: Number,
    locale: str = DEFAULT_LOCALE,
    decimals: int = 2,
    currency: Optional[str] = None,
) -> str:
    """Format an amount with a fixed number of fraction digits."""
    locale = _locale(locale)
    pattern = Locale.parse(locale).currency_formats["standard"].pattern
    return babel_numbers.format_currency(
        amount,
        currency or get_default_currency(locale),
        format=_with_fraction_digits(pattern, decimals),
        locale=locale,
        currency_digits=False,
    )


def format_currency_whole(amount: Number, locale: str = DEFAULT_LOCALE, currency: Optional[str] = None) -> str:
    """Format an amount rounded to whole units ("$1,235")."""
    return format_currency_with_decimals(amount, locale, 0, currency)


def format_currency_accounting(amount: Number, locale: str = DEFAULT_LOCALE, currency: Optional[str] = None) -> str:
    """Accounting style; negatives are shown in parentheses where the locale does."""
    locale = _locale(locale)
    return babel_numbers.format_currency(
        amount,
        currency or get_default_currency(locale),
        locale=locale,
        format_type="accounting",
    )


def format_currency_compact(amount: Number, locale: str = DEFAULT_LOCALE, currency: Optional[str] = None) -> str:
    """Short form for large amounts ("$1.2K", "$3.5M")."""
    locale = _locale(locale)
    return babel_numbers.format_compact_currency(
        amount,
        currency or get_default_currency(locale),
        format_type="short",
        fraction_digits=1,
        locale=locale,
    )


def format_cents(cents: int, locale: str = DEFAULT_LOCALE, currency: Optional[str] = None) -> str:
    """Format an integer amount of minor units."""
    return format_currency(Decimal(cents) / 100, locale, currency)


def format_decimal(value: Number, locale: str = DEFAULT_LOCALE, decimals: int = 2) -> str:
    """Format a number with exactly `decimals` fraction digits."""
    locale = _locale(locale)
    pattern = Locale.parse(locale).decimal_formats[None].pattern
    return babel_numbers.format_decimal(
        value, format=_with_fraction_digits(pattern, decimals), locale=locale
    )


def format_number(value: Number, locale: str = DEFAULT_LOCALE) -> str:
    """Format a number with the locale's default grouping and precision."""
    return babel_numbers.format_decimal(value, locale=_locale(locale))


def format_percent(value: Number, locale: str = DEFAULT_LOCALE, decimals: int = 0) -> str:
    """Format a fraction as a percentage (0.25 -> "25%")."""
    locale = _locale(locale)
    pattern = Locale.parse(locale).percent_formats[None].pattern
    return babel_numbers.format_percent(
        value, format=_with_fraction_digits(pattern, decimals), locale=locale
    )


def format_price_range(
    min_amount: Number,
    max_amount: Number,
    locale: str = DEFAULT_LOCALE,
    currency: Optional[str] = None,
) -> str:
    return f"{format_currency(min_amount, locale, currency)} - {format_currency(max_amount, locale, currency)}"


def get_currency_symbol(currency: str, locale: str = DEFAULT_LOCALE) -> str:
    return babel_numbers.get_currency_symbol(currency, locale=_locale(locale))


def get_currency_name(currency: str, locale: str = DEFAULT_LOCALE) -> str:
    return babel_numbers.get_currency_name(currency, locale=_locale(locale))


def parse_currency(text: str, locale: str = DEFAULT_LOCALE) -> Optional[float]:
    """Parse a user-entered price.

    Spanish input uses "." for grouping and "," for decimals
    ("1.234,56" -> 1234.56). Returns None when the text is not a number.
    """
    if not text:
        return None

    cleaned = re.sub(r"[^\d,.\-]", "", text)
    if _locale(locale) == "es":
        cleaned = cleaned.replace(".", "").replace(",", ".")
    else:
        cleaned = cleaned.replace(",", "")

    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None
    return float(value) if value.is_finite() else None


def is_valid_price(value: Number) -> bool:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False
    return math.isfinite(number) and number >= 0


def calculate_discount(original: Number, discounted: Number) -> int:
    """Discount percentage between two prices, 0 for nonsensical input."""
    if original <= 0 or discounted < 0 or discounted > original:
        return 0
    return round((original - discounted) / original * 100)


def format_discount(original: Number, discounted: Number, locale: str = DEFAULT_LOCALE) -> str:
    """Discount as a negative percentage ("-20%")."""
    percent = calculate_discount(original, discounted)
    return "-" + format_percent(percent / 100, locale)


def calculate_tax(amount: Number, rate: Number) -> float:
    """Tax on amount for a rate given as a fraction (0.16 = 16%)."""
    return round(float(amount) * float(rate), 2)


def calculate_total_with_tax(amount: Number, rate: Number) -> float:
    return round(float(amount) + calculate_tax(amount, rate), 2)


def format_price_with_tax(
    amount: Number,
    rate: Number,
    locale: str = DEFAULT_LOCALE,
    currency: Optional[str] = None,
) -> dict[str, str]:
    tax = calculate_tax(amount, rate)
    return {
        "base": format_currency(amount, locale, currency),
        "tax": format_currency(tax, locale, currency),
        "total": format_currency(calculate_total_with_tax(amount, rate), locale, currency),
    }
