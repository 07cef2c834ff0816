"""Translation repository - Spanish columns of catalog content."""
from typing import Optional

from .base import Repository

# content type -> table
CONTENT_TABLES = {
    "course": "courses",
    "product": "digital_products",
    "event": "events",
}

TRANSLATABLE_FIELDS = ("title_es", "description_es", "long_description_es")

_TRANSLATED = (
    "title_es IS NOT NULL AND TRIM(title_es) != '' "
    "AND description_es IS NOT NULL AND TRIM(description_es) != ''"
)


class TranslationRepository(Repository):
    """Reads and writes translation columns across catalog tables.

    Table names come from CONTENT_TABLES only, never from user input.
    """

    def count(self, content_type: str) -> dict:
        """Total and fully translated row counts for a content type."""
        table = CONTENT_TABLES[content_type]
        row = self._fetchone(
            f"""SELECT COUNT(*) AS total,
                       COALESCE(SUM(CASE WHEN {_TRANSLATED} THEN 1 ELSE 0 END), 0) AS translated
                FROM {table}"""
        )
        return {"total": row["total"], "translated": row["translated"]}

    def list_items(self, content_type: str) -> list[dict]:
        table = CONTENT_TABLES[content_type]
        return self._fetchall(
            f"""SELECT id, title, description, long_description,
                       title_es, description_es, long_description_es
                FROM {table}
                ORDER BY title ASC"""
        )

    def get(self, content_type: str, content_id: str) -> dict | None:
        table = CONTENT_TABLES[content_type]
        return self._fetchone(
            f"""SELECT id, title, description, long_description,
                       title_es, description_es, long_description_es
                FROM {table} WHERE id = ?""",
            (content_id,)
        )

    def update(
        self,
        content_type: str,
        content_id: str,
        title_es: Optional[str],
        description_es: Optional[str],
        long_description_es: Optional[str] = None
    ) -> bool:
        table = CONTENT_TABLES[content_type]
        cursor = self._execute(
            f"""UPDATE {table}
                SET title_es = ?, description_es = ?, long_description_es = ?, updated_at = ?
                WHERE id = ?""",
            (title_es, description_es, long_description_es, self._now(), content_id)
        )
        self._commit()
        return cursor.rowcount > 0
