"""Course repository - courses and their curriculum.

The curriculum is stored as JSON:
    [{"title": "Section", "lessons": [{"id": "l1", "title": "...", "duration_minutes": 10}]}]
"""
import json
from typing import Optional

from .base import Repository

CREATE_FIELDS = (
    "title", "slug", "description", "long_description", "price", "image_url",
    "curriculum", "duration_hours", "level", "is_published",
    "title_es", "description_es", "long_description_es",
)

PUBLISHED = "is_published = 1 AND deleted_at IS NULL"


def parse_curriculum(raw) -> list[dict]:
    """Decode a curriculum column; malformed JSON yields an empty list."""
    if not raw:
        return []
    if isinstance(raw, list):
        return raw
    try:
        data = json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        return []
    return data if isinstance(data, list) else []


def curriculum_lessons(curriculum: list[dict]) -> list[dict]:
    """Flatten a curriculum into its lessons, in course order."""
    lessons = []
    for section in curriculum:
        for lesson in section.get("lessons") or []:
            if isinstance(lesson, dict) and lesson.get("id"):
                lessons.append({**lesson, "section": section.get("title")})
    return lessons


class CourseRepository(Repository):
    """Repository for course entity operations.

    Examples:
        >>> repo = CourseRepository(db)
        >>> course_id = repo.create({"title": "Yoga", "slug": "yoga", "description": "...", "price": 49})
        >>> repo.get_lessons(course_id)
    """

    def create(self, data: dict) -> str:
        """Insert a course.

        Args:
            data: Column values; unknown keys are ignored. ``curriculum`` may
                be a list and ``id`` may be supplied.

        Returns:
            Course UUID
        """
        course_id = data.get("id") or self._new_id()
        fields = {k: data[k] for k in CREATE_FIELDS if k in data}
        if isinstance(fields.get("curriculum"), list):
            fields["curriculum"] = json.dumps(fields["curriculum"])
        if "is_published" in fields:
            fields["is_published"] = 1 if fields["is_published"] else 0

        columns = ["id", *fields.keys()]
        placeholders = ", ".join("?" for _ in columns)
        self._execute(
            f"INSERT INTO courses ({', '.join(columns)}) VALUES ({placeholders})",
            (course_id, *fields.values())
        )
        self._commit()
        return course_id

    def get_by_id(self, course_id: str, published_only: bool = False) -> dict | None:
        """Get course by ID (soft-deleted courses are never returned)."""
        sql = "SELECT * FROM courses WHERE id = ? AND deleted_at IS NULL"
        if published_only:
            sql += " AND is_published = 1"
        return self._decode(self._fetchone(sql, (course_id,)))

    def get_by_slug(self, slug: str) -> dict | None:
        return self._decode(self._fetchone(
            f"SELECT * FROM courses WHERE slug = ? AND {PUBLISHED}",
            (slug,)
        ))

    def list_published(
        self,
        level: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        limit: int = 20,
        offset: int = 0
    ) -> tuple[list[dict], int]:
        """List published courses, newest first.

        Returns:
            Tuple of (courses, total matching)
        """
        where = [PUBLISHED]
        params: list = []
        if level:
            where.append("level = ?")
            params.append(level)
        if min_price is not None:
            where.append("price >= ?")
            params.append(min_price)
        if max_price is not None:
            where.append("price <= ?")
            params.append(max_price)
        where_sql = " AND ".join(where)

        total = self._count(f"SELECT COUNT(*) AS count FROM courses WHERE {where_sql}", tuple(params))
        rows = self._fetchall(
            f"""SELECT * FROM courses WHERE {where_sql}
                ORDER BY created_at DESC, title ASC
                LIMIT ? OFFSET ?""",
            (*params, limit, offset)
        )
        return [self._decode(row) for row in rows], total

    def get_lessons(self, course_id: str) -> list[dict]:
        """Flattened lesson list of a course (empty if unknown course)."""
        row = self._fetchone("SELECT curriculum FROM courses WHERE id = ?", (course_id,))
        if not row:
            return []
        return curriculum_lessons(parse_curriculum(row["curriculum"]))

    @staticmethod
    def _decode(course: dict | None) -> dict | None:
        if course is not None:
            course["curriculum"] = parse_curriculum(course.get("curriculum"))
            course["is_published"] = bool(course.get("is_published"))
        return course
