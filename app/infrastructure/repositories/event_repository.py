"""Event repository - in-person events with limited capacity."""
from typing import Optional

from .base import Repository

CREATE_FIELDS = (
    "title", "slug", "description", "long_description", "price", "event_date",
    "duration_hours", "venue_name", "venue_address", "venue_city", "venue_country",
    "capacity", "available_spots", "image_url", "is_published",
    "title_es", "description_es", "long_description_es",
    "venue_name_es", "venue_address_es",
)


class EventRepository(Repository):
    """Repository for event entity operations."""

    def create(self, data: dict) -> str:
        """Insert an event; unknown keys in data are ignored.

        ``available_spots`` defaults to ``capacity``.

        Returns:
            Event UUID
        """
        event_id = data.get("id") or self._new_id()
        fields = {k: data[k] for k in CREATE_FIELDS if k in data}
        fields.setdefault("available_spots", fields.get("capacity"))
        if "is_published" in fields:
            fields["is_published"] = 1 if fields["is_published"] else 0

        columns = ["id", *fields.keys()]
        placeholders = ", ".join("?" for _ in columns)
        self._execute(
            f"INSERT INTO events ({', '.join(columns)}) VALUES ({placeholders})",
            (event_id, *fields.values())
        )
        self._commit()
        return event_id

    def get_by_id(self, event_id: str, published_only: bool = False) -> dict | None:
        sql = "SELECT * FROM events WHERE id = ?"
        if published_only:
            sql += " AND is_published = 1"
        return self._decode(self._fetchone(sql, (event_id,)))

    def list_upcoming(
        self,
        city: Optional[str] = None,
        limit: int = 20,
        offset: int = 0
    ) -> tuple[list[dict], int]:
        """List published events that haven't started yet, soonest first.

        Returns:
            Tuple of (events, total matching)
        """
        where = "is_published = 1 AND event_date >= ?"
        params: tuple = (self._now(),)
        if city:
            where += " AND LOWER(venue_city) = LOWER(?)"
            params += (city.strip(),)

        total = self._count(f"SELECT COUNT(*) AS count FROM events WHERE {where}", params)
        rows = self._fetchall(
            f"""SELECT * FROM events WHERE {where}
                ORDER BY event_date ASC, title ASC
                LIMIT ? OFFSET ?""",
            (*params, limit, offset)
        )
        return [self._decode(row) for row in rows], total

    @staticmethod
    def _decode(event: dict | None) -> dict | None:
        if event is not None:
            event["is_published"] = bool(event.get("is_published"))
        return event
