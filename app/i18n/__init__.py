"""Internationalization: translation catalogs and locale detection.

Catalogs live in ``app/i18n/locales/<locale>.json`` as nested objects and
are addressed with dot paths (``"email.review_update_subject"``).

Lookup falls back from the requested locale to the default locale and
finally to the key itself, so a missing translation never breaks a page.
"""
import json
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from starlette.requests import Request

from ..config import LOCALE_COOKIE
from ..log import get_logger

logger = get_logger(__name__)

LOCALES = ("en", "es")
DEFAULT_LOCALE = "en"
LOCALE_NAMES = {
    "en": "English",
    "es": "Español",
}

LOCALES_DIR = Path(__file__).resolve().parent / "locales"

_PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")
_MISSING = object()


def is_valid_locale(value: Any) -> bool:
    """Check whether value is a supported locale code."""
    return isinstance(value, str) and value in LOCALES


@lru_cache(maxsize=None)
def _load_catalog(locale: str) -> dict:
    with open(LOCALES_DIR / f"{locale}.json", encoding="utf-8") as f:
        return json.load(f)


def get_translations(locale: str) -> dict:
    """Return the full catalog for a locale (default locale if unsupported)."""
    if not is_valid_locale(locale):
        locale = DEFAULT_LOCALE
    return _load_catalog(locale)


def _resolve(catalog: dict, key: str) -> Any:
    value: Any = catalog
    for part in key.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def lookup(locale: str, key: str) -> Any:
    """Resolve a dot-path key to its raw value, following the fallback chain.

    Returns None if neither the locale nor the default locale define it.
    """
    chain = [locale] if is_valid_locale(locale) else []
    if DEFAULT_LOCALE not in chain:
        chain.append(DEFAULT_LOCALE)

    for candidate in chain:
        value = _resolve(_load_catalog(candidate), key)
        if value is not _MISSING:
            return value
    return None


def interpolate(template: str, variables: Optional[dict[str, Any]] = None) -> str:
    """Replace ``{{name}}`` placeholders; unknown placeholders are kept."""
    if not variables:
        return template

    def _replace(match: re.Match) -> str:
        name = match.group(1)
        if name in variables:
            return str(variables[name])
        return match.group(0)

    return _PLACEHOLDER_RE.sub(_replace, template)


def t(locale: str, key: str, variables: Optional[dict[str, Any]] = None) -> str:
    """Translate a key.

    Args:
        locale: Target locale
        key: Dot-path key, e.g. ``"progress.lesson_started"``
        variables: Values for ``{{placeholder}}`` interpolation

    Returns:
        Translated string, or the key itself when no string is found
    """
    value = lookup(locale, key)
    if value is None:
        logger.warning("translation_missing", key=key, locale=locale)
        return key
    if not isinstance(value, str):
        logger.warning("translation_not_string", key=key, locale=locale)
        return key
    return interpolate(value, variables)


def _primary_subtag(tag: str) -> str:
    return tag.strip().split(";")[0].split("-")[0].split("_")[0].lower()


def parse_accept_language(header: Optional[str]) -> Optional[str]:
    """Locale from the first Accept-Language entry, if supported."""
    if not header:
        return None
    first = header.split(",")[0]
    candidate = _primary_subtag(first)
    return candidate if is_valid_locale(candidate) else None


def get_locale_from_request(request: Request) -> str:
    """Detect locale from query (?lang), cookie, then Accept-Language."""
    query_locale = request.query_params.get("lang")
    if is_valid_locale(query_locale):
        return query_locale

    cookie_locale = request.cookies.get(LOCALE_COOKIE)
    if is_valid_locale(cookie_locale):
        return cookie_locale

    header_locale = parse_accept_language(request.headers.get("accept-language"))
    if header_locale:
        return header_locale

    return DEFAULT_LOCALE


def extract_locale_from_path(path: str) -> tuple[Optional[str], str]:
    """Split a leading locale segment off a path.

    >>> extract_locale_from_path("/es/courses")
    ('es', '/courses')
    >>> extract_locale_from_path("/courses")
    (None, '/courses')
    """
    segments = path.split("/")
    if len(segments) > 1 and is_valid_locale(segments[1]):
        rest = "/" + "/".join(segments[2:])
        return segments[1], rest
    return None, path


def get_localized_path(path: str, locale: str) -> str:
    """Prefix a path with its locale; the default locale gets no prefix."""
    _, clean_path = extract_locale_from_path(path)
    if not clean_path.startswith("/"):
        clean_path = "/" + clean_path
    if not is_valid_locale(locale) or locale == DEFAULT_LOCALE:
        return clean_path
    if clean_path == "/":
        return f"/{locale}"
    return f"/{locale}{clean_path}"


__all__ = [
    "LOCALES",
    "DEFAULT_LOCALE",
    "LOCALE_NAMES",
    "is_valid_locale",
    "get_translations",
    "lookup",
    "interpolate",
    "t",
    "parse_accept_language",
    "get_locale_from_request",
    "extract_locale_from_path",
    "get_localized_path",
]
