"""Lesson progress repository - time, attempts and scores per lesson."""
from typing import Optional

from .base import Repository


class LessonProgressRepository(Repository):
    """Repository for the lesson_progress table."""

    def get(self, user_id: int, course_id: str, lesson_id: str) -> dict | None:
        return self._decode(self._fetchone(
            """SELECT * FROM lesson_progress
               WHERE user_id = ? AND course_id = ? AND lesson_id = ?""",
            (user_id, course_id, lesson_id)
        ))

    def get_or_create(self, user_id: int, course_id: str, lesson_id: str) -> tuple[dict, bool]:
        """Start tracking a lesson unless a record already exists.

        Returns:
            Tuple of (lesson progress, True if this call inserted it)
        """
        now = self._now()
        cursor = self._execute(
            """INSERT INTO lesson_progress
               (id, user_id, course_id, lesson_id, first_started_at, last_accessed_at,
                created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(user_id, course_id, lesson_id) DO NOTHING""",
            (self._new_id(), user_id, course_id, lesson_id, now, now, now, now)
        )
        self._commit()
        return self.get(user_id, course_id, lesson_id), cursor.rowcount > 0

    def touch(self, user_id: int, course_id: str, lesson_id: str) -> dict | None:
        now = self._now()
        self._execute(
            """UPDATE lesson_progress SET last_accessed_at = ?, updated_at = ?
               WHERE user_id = ? AND course_id = ? AND lesson_id = ?""",
            (now, now, user_id, course_id, lesson_id)
        )
        self._commit()
        return self.get(user_id, course_id, lesson_id)

    def add_time(self, user_id: int, course_id: str, lesson_id: str, seconds: int) -> dict | None:
        now = self._now()
        self._execute(
            """UPDATE lesson_progress
               SET time_spent_seconds = time_spent_seconds + ?,
                   last_accessed_at = ?, updated_at = ?
               WHERE user_id = ? AND course_id = ? AND lesson_id = ?""",
            (seconds, now, now, user_id, course_id, lesson_id)
        )
        self._commit()
        return self.get(user_id, course_id, lesson_id)

    def mark_completed(
        self,
        user_id: int,
        course_id: str,
        lesson_id: str,
        score: Optional[int] = None
    ) -> dict | None:
        """Set completed, bump attempts and store the score if given."""
        now = self._now()
        self._execute(
            """UPDATE lesson_progress
               SET completed = 1, attempts = attempts + 1,
                   score = COALESCE(?, score),
                   completed_at = ?, last_accessed_at = ?, updated_at = ?
               WHERE user_id = ? AND course_id = ? AND lesson_id = ?""",
            (score, now, now, now, user_id, course_id, lesson_id)
        )
        self._commit()
        return self.get(user_id, course_id, lesson_id)

    def mark_incomplete(self, user_id: int, course_id: str, lesson_id: str) -> dict | None:
        now = self._now()
        self._execute(
            """UPDATE lesson_progress
               SET completed = 0, completed_at = NULL, last_accessed_at = ?, updated_at = ?
               WHERE user_id = ? AND course_id = ? AND lesson_id = ?""",
            (now, now, user_id, course_id, lesson_id)
        )
        self._commit()
        return self.get(user_id, course_id, lesson_id)

    def list_for_course(self, user_id: int, course_id: str) -> list[dict]:
        """All tracked lessons of a course, in the order they were started."""
        return [
            self._decode(row)
            for row in self._fetchall(
                """SELECT * FROM lesson_progress
                   WHERE user_id = ? AND course_id = ?
                   ORDER BY first_started_at ASC, rowid ASC""",
                (user_id, course_id)
            )
        ]

    def delete_for_course(self, user_id: int, course_id: str) -> int:
        cursor = self._execute(
            "DELETE FROM lesson_progress WHERE user_id = ? AND course_id = ?",
            (user_id, course_id)
        )
        self._commit()
        return cursor.rowcount

    @staticmethod
    def _decode(progress: dict | None) -> dict | None:
        if progress is not None:
            progress["completed"] = bool(progress.get("completed"))
        return progress
