"""Search service - ranked catalog search across courses, products and events.

Results are localized to the request locale: titles and descriptions come
from the translation columns when present, and prices are formatted with
the locale's conventions.
"""
from dataclasses import dataclass
from typing import Optional

from ... import config
from ...errors import ValidationError
from ...i18n import DEFAULT_LOCALE, is_valid_locale
from ...i18n.currency import format_currency
from ...i18n.dates import format_datetime
from ...infrastructure.repositories import SearchRepository

SEARCH_TYPES = ("course", "product", "event")

DEFAULT_LIMIT = 20
MAX_LIMIT = 50
MAX_QUERY_LENGTH = 200
MIN_SUGGESTION_LENGTH = 2


@dataclass
class SearchOptions:
    """Search parameters.

    ``level`` only applies to courses, ``product_type`` to products and
    ``city`` to events; in a search over all types each filter narrows
    only its own type.
    """
    query: str = ""
    type: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    level: Optional[str] = None
    product_type: Optional[str] = None
    city: Optional[str] = None
    limit: int = DEFAULT_LIMIT
    offset: int = 0
    locale: str = DEFAULT_LOCALE


def validate_options(options: SearchOptions) -> SearchOptions:
    """Normalise and validate search options.

    Raises:
        ValidationError: On an unknown type, bad pagination or price range
    """
    fields = {}

    query = (options.query or "").strip()
    if len(query) > MAX_QUERY_LENGTH:
        fields["q"] = f"Query must be at most {MAX_QUERY_LENGTH} characters"

    if options.type is not None and options.type not in SEARCH_TYPES:
        fields["type"] = f"Type must be one of: {', '.join(SEARCH_TYPES)}"

    if not 1 <= options.limit <= MAX_LIMIT:
        fields["limit"] = f"Limit must be between 1 and {MAX_LIMIT}"
    if options.offset < 0:
        fields["offset"] = "Offset must be 0 or greater"

    if options.min_price is not None and options.min_price < 0:
        fields["min_price"] = "Price must be 0 or greater"
    if options.max_price is not None and options.max_price < 0:
        fields["max_price"] = "Price must be 0 or greater"
    if (
        options.min_price is not None
        and options.max_price is not None
        and options.min_price > options.max_price
    ):
        fields["min_price"] = "Minimum price cannot be greater than maximum price"

    if fields:
        raise ValidationError("Invalid search parameters", fields=fields)

    options.query = query
    options.city = (options.city or "").strip() or None
    if not is_valid_locale(options.locale):
        options.locale = DEFAULT_LOCALE
    return options


class SearchService:
    """Service for catalog search.

    Responsibilities:
    - Per-type and unified ranked search
    - Title suggestions for autocomplete
    - Filter facets (levels, product types, price range)
    """

    def __init__(self, search_repository: SearchRepository):
        self.search_repo = search_repository

    # =========================================================================
    # Search
    # =========================================================================

    def search(self, options: SearchOptions) -> dict:
        """Search one type, or all types merged by relevance.

        Returns:
            Dict with items, total, limit, offset, has_more
        """
        options = validate_options(options)

        if options.type == "course":
            return self.search_courses(options)
        if options.type == "product":
            return self.search_products(options)
        if options.type == "event":
            return self.search_events(options)

        # Every type is fetched from its start so that the merged page is
        # taken from the globally best offset+limit results
        window = options.offset + options.limit
        items: list[dict] = []
        total = 0
        for item_type in SEARCH_TYPES:
            rows, count = self._search_type(item_type, options, window, 0)
            items.extend(self._format(item_type, row, options.locale) for row in rows)
            total += count

        items.sort(key=lambda item: item["relevance"], reverse=True)
        page = items[options.offset:window]
        return self._page(page, total, options)

    def search_courses(self, options: SearchOptions) -> dict:
        return self._search_single("course", validate_options(options))

    def search_products(self, options: SearchOptions) -> dict:
        return self._search_single("product", validate_options(options))

    def search_events(self, options: SearchOptions) -> dict:
        return self._search_single("event", validate_options(options))

    def _search_single(self, item_type: str, options: SearchOptions) -> dict:
        rows, total = self._search_type(item_type, options, options.limit, options.offset)
        items = [self._format(item_type, row, options.locale) for row in rows]
        return self._page(items, total, options)

    def _search_type(
        self,
        item_type: str,
        options: SearchOptions,
        limit: int,
        offset: int
    ) -> tuple[list[dict], int]:
        common = {
            "min_price": options.min_price,
            "max_price": options.max_price,
            "limit": limit,
            "offset": offset,
        }
        if item_type == "course":
            return self.search_repo.search_courses(
                options.query, options.locale, level=options.level, **common
            )
        if item_type == "product":
            return self.search_repo.search_products(
                options.query, options.locale, product_type=options.product_type, **common
            )
        return self.search_repo.search_events(
            options.query, options.locale, city=options.city, **common
        )

    # =========================================================================
    # Suggestions & Facets
    # =========================================================================

    def get_search_suggestions(
        self,
        query: str,
        limit: int = 5,
        locale: str = DEFAULT_LOCALE
    ) -> list[str]:
        """Distinct titles containing the query, for autocomplete."""
        query = (query or "").strip()
        if len(query) < MIN_SUGGESTION_LENGTH:
            return []
        limit = max(1, min(MAX_LIMIT, limit))
        if not is_valid_locale(locale):
            locale = DEFAULT_LOCALE

        suggestions: list[str] = []
        seen: set[str] = set()
        for title in self.search_repo.suggest_titles(query, locale, limit):
            key = title.lower()
            if key not in seen:
                seen.add(key)
                suggestions.append(title)
        return suggestions[:limit]

    def get_available_levels(self) -> list[str]:
        return self.search_repo.get_course_levels()

    def get_available_product_types(self) -> list[str]:
        return self.search_repo.get_product_types()

    def get_price_range(self, item_type: Optional[str] = None) -> dict:
        if item_type is not None and item_type not in SEARCH_TYPES:
            raise ValidationError(f"Type must be one of: {', '.join(SEARCH_TYPES)}")
        return self.search_repo.get_price_range(item_type)

    def get_filter_options(self) -> dict:
        return {
            "types": list(SEARCH_TYPES),
            "levels": self.get_available_levels(),
            "product_types": self.get_available_product_types(),
            "price_range": self.get_price_range(),
        }

    # =========================================================================
    # Helper Methods
    # =========================================================================

    @staticmethod
    def _format(item_type: str, row: dict, locale: str) -> dict:
        item = {
            "type": item_type,
            "id": row["id"],
            "slug": row.get("slug"),
            "title": row["title"],
            "description": row.get("description"),
            "price": row["price"],
            "price_formatted": format_currency(row["price"], locale, config.CATALOG_CURRENCY),
            "image_url": row.get("image_url"),
            "relevance": round(float(row.get("relevance") or 0), 4),
        }
        if item_type == "course":
            item["level"] = row.get("level")
            item["duration_hours"] = row.get("duration_hours")
        elif item_type == "product":
            item["product_type"] = row.get("product_type")
            item["file_size_mb"] = row.get("file_size_mb")
        else:
            item["event_date"] = row.get("event_date")
            item["event_date_formatted"] = (
                format_datetime(row["event_date"], locale) if row.get("event_date") else None
            )
            item["venue_city"] = row.get("venue_city")
            item["venue_country"] = row.get("venue_country")
            item["available_spots"] = row.get("available_spots")
        return item

    @staticmethod
    def _page(items: list[dict], total: int, options: SearchOptions) -> dict:
        return {
            "items": items,
            "total": total,
            "limit": options.limit,
            "offset": options.offset,
            "has_more": options.offset + len(items) < total,
        }
