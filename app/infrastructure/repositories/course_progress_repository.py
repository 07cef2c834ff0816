"""Course progress repository - per-user, per-course completion state.

``completed_lessons`` is a JSON array of lesson IDs; ``progress_percentage``
is derived from it by the service layer and stored for cheap listing.
"""
import json
from typing import Optional

from .base import Repository


class CourseProgressRepository(Repository):
    """Repository for the course_progress table."""

    def get(self, user_id: int, course_id: str) -> dict | None:
        return self._decode(self._fetchone(
            "SELECT * FROM course_progress WHERE user_id = ? AND course_id = ?",
            (user_id, course_id)
        ))

    def create(self, user_id: int, course_id: str) -> dict:
        """Create an empty (0%) progress record, or return the existing one."""
        now = self._now()
        self._execute(
            """INSERT INTO course_progress
               (id, user_id, course_id, completed_lessons, progress_percentage,
                last_accessed_at, created_at, updated_at)
               VALUES (?, ?, ?, '[]', 0, ?, ?, ?)
               ON CONFLICT(user_id, course_id) DO NOTHING""",
            (self._new_id(), user_id, course_id, now, now, now)
        )
        self._commit()
        return self.get(user_id, course_id)

    def save(
        self,
        user_id: int,
        course_id: str,
        completed_lessons: list[str],
        progress_percentage: int,
        completed_at: Optional[str]
    ) -> dict:
        """Store new completion state and touch last_accessed_at."""
        now = self._now()
        self._execute(
            """UPDATE course_progress
               SET completed_lessons = ?, progress_percentage = ?, completed_at = ?,
                   last_accessed_at = ?, updated_at = ?
               WHERE user_id = ? AND course_id = ?""",
            (json.dumps(completed_lessons), progress_percentage, completed_at,
             now, now, user_id, course_id)
        )
        self._commit()
        return self.get(user_id, course_id)

    def touch(self, user_id: int, course_id: str) -> bool:
        now = self._now()
        cursor = self._execute(
            """UPDATE course_progress SET last_accessed_at = ?, updated_at = ?
               WHERE user_id = ? AND course_id = ?""",
            (now, now, user_id, course_id)
        )
        self._commit()
        return cursor.rowcount > 0

    def delete(self, user_id: int, course_id: str) -> bool:
        cursor = self._execute(
            "DELETE FROM course_progress WHERE user_id = ? AND course_id = ?",
            (user_id, course_id)
        )
        self._commit()
        return cursor.rowcount > 0

    def list_for_user(self, user_id: int, include_completed: bool = True) -> list[dict]:
        """All progress records of a user with course titles, most recent first."""
        sql = """SELECT cp.*, c.title AS course_title, c.title_es AS course_title_es,
                        c.slug AS course_slug
                 FROM course_progress cp
                 JOIN courses c ON c.id = cp.course_id
                 WHERE cp.user_id = ?"""
        if not include_completed:
            sql += " AND cp.completed_at IS NULL"
        sql += " ORDER BY cp.last_accessed_at DESC"
        return [self._decode(row) for row in self._fetchall(sql, (user_id,))]

    def get_many(self, user_id: int, course_ids: list[str]) -> list[dict]:
        if not course_ids:
            return []
        placeholders = ", ".join("?" for _ in course_ids)
        return [
            self._decode(row)
            for row in self._fetchall(
                f"""SELECT * FROM course_progress
                    WHERE user_id = ? AND course_id IN ({placeholders})""",
                (user_id, *course_ids)
            )
        ]

    @staticmethod
    def _decode(progress: dict | None) -> dict | None:
        if progress is not None:
            try:
                lessons = json.loads(progress.get("completed_lessons") or "[]")
            except (TypeError, json.JSONDecodeError):
                lessons = []
            progress["completed_lessons"] = lessons if isinstance(lessons, list) else []
        return progress
