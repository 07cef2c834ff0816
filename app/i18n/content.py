"""Localized database content.

Translatable columns are stored next to their base column with a locale
suffix (``title`` / ``title_es``). English is the base language, so an
``en`` request reads the base column and other locales fall back to it when
their translation is missing or blank.
"""
import re
from typing import Any, Mapping, Optional

from . import DEFAULT_LOCALE, LOCALES, is_valid_locale

COURSE_FIELDS = ("title", "description", "long_description")
PRODUCT_FIELDS = ("title", "description", "long_description")
EVENT_FIELDS = ("title", "description", "long_description", "venue_name", "venue_address")

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def _to_snake(name: str) -> str:
    return _CAMEL_RE.sub("_", name).lower()


def get_localized_field(entity: Mapping[str, Any], field: str, locale: str) -> Any:
    """Return the field value in the requested locale, or the base value."""
    base_value = entity.get(field)
    if locale == DEFAULT_LOCALE or not is_valid_locale(locale):
        return base_value

    localized = entity.get(f"{field}_{locale}")
    if localized is None or (isinstance(localized, str) and not localized.strip()):
        return base_value
    return localized


def _localize(entity: Mapping[str, Any], fields: tuple[str, ...], locale: str) -> dict:
    result = dict(entity)
    for field in fields:
        if field in result:
            result[field] = get_localized_field(entity, field, locale)
    # Translation columns are a storage detail
    for field in fields:
        for code in LOCALES:
            if code != DEFAULT_LOCALE:
                result.pop(f"{field}_{code}", None)
    return result


def localize_course(course: Mapping[str, Any], locale: str) -> dict:
    return _localize(course, COURSE_FIELDS, locale)


def localize_product(product: Mapping[str, Any], locale: str) -> dict:
    return _localize(product, PRODUCT_FIELDS, locale)


def localize_event(event: Mapping[str, Any], locale: str) -> dict:
    return _localize(event, EVENT_FIELDS, locale)


def get_sql_column(base_column: str, locale: str) -> str:
    """Column name holding base_column in locale (camelCase accepted)."""
    column = _to_snake(base_column)
    if locale == DEFAULT_LOCALE or not is_valid_locale(locale):
        return column
    return f"{column}_{locale}"


def get_sql_coalesce(base_column: str, locale: str, alias: Optional[str] = None) -> str:
    """SQL expression selecting the localized column with base fallback.

    >>> get_sql_coalesce("title", "es")
    "COALESCE(NULLIF(title_es, ''), title) AS title"
    """
    column = _to_snake(base_column)
    alias = alias or column
    if locale == DEFAULT_LOCALE or not is_valid_locale(locale):
        return f"{column} AS {alias}" if alias != column else column
    return f"COALESCE(NULLIF({column}_{locale}, ''), {column}) AS {alias}"


def get_sql_text(base_column: str, locale: str, table: Optional[str] = None) -> str:
    """Like get_sql_coalesce without the alias, for WHERE/ORDER BY clauses."""
    column = _to_snake(base_column)
    if table:
        column = f"{table}.{column}"
    if locale == DEFAULT_LOCALE or not is_valid_locale(locale):
        return column
    return f"COALESCE(NULLIF({column}_{locale}, ''), {column})"
