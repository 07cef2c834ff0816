"""Search repository - ranked catalog queries.

Relevance comes from the ``search_rank(title, body, query)`` SQL function
registered by ``app.database.create_connection``; rows ranking 0 don't
match every query term and are filtered out.
"""
from typing import Optional

from ...i18n.content import get_sql_text
from .base import Repository

COURSE_LEVEL_ORDER = ("beginner", "intermediate", "advanced")

_TABLES = {
    "course": "courses",
    "product": "digital_products",
    "event": "events",
}

_PUBLISHED = {
    "course": "is_published = 1 AND deleted_at IS NULL",
    "product": "is_published = 1",
    "event": "is_published = 1 AND event_date >= ?",
}


def escape_like(value: str) -> str:
    """Escape LIKE wildcards in user input (used with ESCAPE '\\')."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SearchRepository(Repository):
    """Repository for full-text catalog search and search facets."""

    def search_courses(
        self,
        query: str,
        locale: str,
        level: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        limit: int = 20,
        offset: int = 0
    ) -> tuple[list[dict], int]:
        title = get_sql_text("title", locale)
        body = get_sql_text("description", locale)
        rank = f"search_rank({title}, {body}, ?)"

        where = [_PUBLISHED["course"], f"{rank} > 0"]
        params: list = [query]
        if level:
            where.append("level = ?")
            params.append(level)
        self._price_filter(where, params, min_price, max_price)
        where_sql = " AND ".join(where)

        total = self._count(f"SELECT COUNT(*) AS count FROM courses WHERE {where_sql}", tuple(params))
        rows = self._fetchall(
            f"""SELECT id, slug, {title} AS title, {body} AS description, price,
                       image_url, level, duration_hours, created_at,
                       {rank} AS relevance
                FROM courses
                WHERE {where_sql}
                ORDER BY relevance DESC, title ASC
                LIMIT ? OFFSET ?""",
            (query, *params, limit, offset)
        )
        return rows, total

    def search_products(
        self,
        query: str,
        locale: str,
        product_type: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        limit: int = 20,
        offset: int = 0
    ) -> tuple[list[dict], int]:
        title = get_sql_text("title", locale)
        body = get_sql_text("description", locale)
        rank = f"search_rank({title}, {body}, ?)"

        where = [_PUBLISHED["product"], f"{rank} > 0"]
        params: list = [query]
        if product_type:
            where.append("product_type = ?")
            params.append(product_type)
        self._price_filter(where, params, min_price, max_price)
        where_sql = " AND ".join(where)

        total = self._count(
            f"SELECT COUNT(*) AS count FROM digital_products WHERE {where_sql}", tuple(params)
        )
        rows = self._fetchall(
            f"""SELECT id, slug, {title} AS title, {body} AS description, price,
                       image_url, product_type, file_size_mb, created_at,
                       {rank} AS relevance
                FROM digital_products
                WHERE {where_sql}
                ORDER BY relevance DESC, title ASC
                LIMIT ? OFFSET ?""",
            (query, *params, limit, offset)
        )
        return rows, total

    def search_events(
        self,
        query: str,
        locale: str,
        city: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        limit: int = 20,
        offset: int = 0
    ) -> tuple[list[dict], int]:
        title = get_sql_text("title", locale)
        description = get_sql_text("description", locale)
        body = f"{description} || ' ' || venue_city || ' ' || venue_country"
        rank = f"search_rank({title}, {body}, ?)"

        # The published clause carries the "upcoming" cut-off parameter
        where = [_PUBLISHED["event"], f"{rank} > 0"]
        params: list = [self._now(), query]
        if city:
            where.append("LOWER(venue_city) LIKE LOWER(?) ESCAPE '\\'")
            params.append(f"%{escape_like(city.strip())}%")
        self._price_filter(where, params, min_price, max_price)
        where_sql = " AND ".join(where)

        total = self._count(f"SELECT COUNT(*) AS count FROM events WHERE {where_sql}", tuple(params))
        rows = self._fetchall(
            f"""SELECT id, slug, {title} AS title, {description} AS description, price,
                       image_url, event_date, venue_city, venue_country,
                       available_spots, created_at,
                       {rank} AS relevance
                FROM events
                WHERE {where_sql}
                ORDER BY relevance DESC, event_date ASC
                LIMIT ? OFFSET ?""",
            (query, *params, limit, offset)
        )
        return rows, total

    def suggest_titles(self, fragment: str, locale: str, limit: int) -> list[str]:
        """Localized titles containing fragment, courses first."""
        pattern = f"%{escape_like(fragment.lower())}%"
        titles: list[str] = []
        for item_type, table in _TABLES.items():
            title = get_sql_text("title", locale)
            params: tuple = (self._now(),) if item_type == "event" else ()
            rows = self._fetchall(
                f"""SELECT DISTINCT {title} AS title FROM {table}
                    WHERE {_PUBLISHED[item_type]}
                      AND LOWER({title}) LIKE ? ESCAPE '\\'
                    ORDER BY title ASC
                    LIMIT ?""",
                (*params, pattern, limit)
            )
            titles.extend(row["title"] for row in rows)
        return titles

    def get_course_levels(self) -> list[str]:
        rows = self._fetchall(
            f"""SELECT DISTINCT level FROM courses
                WHERE {_PUBLISHED['course']} AND level IS NOT NULL"""
        )
        levels = {row["level"] for row in rows}
        return [level for level in COURSE_LEVEL_ORDER if level in levels]

    def get_product_types(self) -> list[str]:
        rows = self._fetchall(
            f"""SELECT DISTINCT product_type FROM digital_products
                WHERE {_PUBLISHED['product']}
                ORDER BY product_type ASC"""
        )
        return [row["product_type"] for row in rows]

    def get_price_range(self, item_type: Optional[str] = None) -> dict:
        """Min and max price of searchable items of one type, or all types."""
        selects = []
        params: list = []
        for name, table in _TABLES.items():
            if item_type and name != item_type:
                continue
            selects.append(f"SELECT price FROM {table} WHERE {_PUBLISHED[name]}")
            if name == "event":
                params.append(self._now())

        row = self._fetchone(
            f"""SELECT MIN(price) AS min, MAX(price) AS max
                FROM ({' UNION ALL '.join(selects)})""",
            tuple(params)
        )
        return {
            "min": row["min"] if row and row["min"] is not None else 0,
            "max": row["max"] if row and row["max"] is not None else 0,
        }

    @staticmethod
    def _price_filter(where: list, params: list, min_price, max_price) -> None:
        if min_price is not None:
            where.append("price >= ?")
            params.append(min_price)
        if max_price is not None:
            where.append("price <= ?")
            params.append(max_price)
