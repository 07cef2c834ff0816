"""Progress service - course completion and per-lesson tracking.

Two levels are tracked:
- course progress: which lessons of a course are done and the resulting
  percentage, one record per user and course
- lesson progress: time spent, attempts and quiz score, one record per
  user, course and lesson

Completing a lesson updates both.
"""
from typing import Optional

from ...errors import AuthorizationError, NotFoundError, ValidationError
from ...infrastructure.repositories import (
    CourseProgressRepository,
    CourseRepository,
    LessonProgressRepository,
    OrderRepository,
)
from ...infrastructure.repositories.base import utc_now
from ...log import get_logger

logger = get_logger(__name__)

DIFFICULT_LESSON_ATTEMPTS = 3

LESSON_NOT_STARTED = "Lesson progress not found. Start the lesson first."


def calculate_percentage(completed: int, total: int) -> int:
    """Rounded completion percentage, capped at 100."""
    if total <= 0:
        return 0
    return min(100, round(completed / total * 100))


class ProgressService:
    """Service for learning progress.

    Responsibilities:
    - Course progress (completed lessons, percentage, last access)
    - Lesson progress (time, attempts, scores)
    - Access control: lessons require a completed purchase unless admin
    """

    def __init__(
        self,
        course_progress_repository: CourseProgressRepository,
        lesson_progress_repository: LessonProgressRepository,
        course_repository: CourseRepository,
        order_repository: OrderRepository
    ):
        self.course_progress_repo = course_progress_repository
        self.lesson_progress_repo = lesson_progress_repository
        self.course_repo = course_repository
        self.order_repo = order_repository

    # =========================================================================
    # Course Progress
    # =========================================================================

    def get_course_progress(self, user_id: int, course_id: str) -> Optional[dict]:
        return self.course_progress_repo.get(user_id, course_id)

    def get_user_progress(self, user_id: int, include_completed: bool = True) -> list[dict]:
        """All course progress of a user, most recently accessed first."""
        return self.course_progress_repo.list_for_user(user_id, include_completed)

    def mark_lesson_complete(
        self,
        user_id: int,
        course_id: str,
        lesson_id: str,
        total_lessons: Optional[int] = None
    ) -> dict:
        """Add a lesson to the course's completed list.

        Args:
            total_lessons: Lesson count of the course; defaults to the
                number of lessons in its curriculum

        Raises:
            NotFoundError: Lesson is not part of the course curriculum
        """
        total = self._total_lessons(course_id, lesson_id, total_lessons)

        progress = self.course_progress_repo.get(user_id, course_id)
        if progress is None:
            progress = self.course_progress_repo.create(user_id, course_id)

        completed = list(progress["completed_lessons"])
        if lesson_id not in completed:
            completed.append(lesson_id)

        if total is None:
            total = max(len(completed), 1)
        percentage = calculate_percentage(len(completed), total)
        completed_at = progress.get("completed_at")
        if percentage >= 100:
            completed_at = completed_at or utc_now()

        return self.course_progress_repo.save(user_id, course_id, completed, percentage, completed_at)

    def mark_lesson_incomplete(
        self,
        user_id: int,
        course_id: str,
        lesson_id: str,
        total_lessons: Optional[int] = None
    ) -> Optional[dict]:
        """Remove a lesson from the completed list.

        Returns:
            Updated progress, or None if the course was never started
        """
        progress = self.course_progress_repo.get(user_id, course_id)
        if progress is None:
            return None

        total = self._total_lessons(course_id, lesson_id, total_lessons)
        completed = [lid for lid in progress["completed_lessons"] if lid != lesson_id]
        if total is None:
            total = max(len(completed), 1)
        percentage = calculate_percentage(len(completed), total) if completed else 0

        return self.course_progress_repo.save(user_id, course_id, completed, percentage, None)

    def reset_course_progress(self, user_id: int, course_id: str) -> bool:
        """Forget all progress of a course, lesson records included."""
        self.lesson_progress_repo.delete_for_course(user_id, course_id)
        deleted = self.course_progress_repo.delete(user_id, course_id)
        if deleted:
            logger.info("course_progress_reset", user_id=user_id, course_id=course_id)
        return deleted

    def update_last_accessed(self, user_id: int, course_id: str) -> dict:
        """Touch the course progress, creating a 0% record if needed."""
        if not self.course_progress_repo.touch(user_id, course_id):
            return self.course_progress_repo.create(user_id, course_id)
        return self.course_progress_repo.get(user_id, course_id)

    def get_progress_stats(self, user_id: int) -> dict:
        records = self.course_progress_repo.list_for_user(user_id)
        total = len(records)
        completed = sum(1 for r in records if r.get("completed_at"))
        in_progress = sum(
            1 for r in records
            if not r.get("completed_at") and r["progress_percentage"] > 0
        )
        return {
            "total_courses": total,
            "completed_courses": completed,
            "in_progress_courses": in_progress,
            "total_lessons_completed": sum(len(r["completed_lessons"]) for r in records),
            "average_progress": (
                round(sum(r["progress_percentage"] for r in records) / total) if total else 0
            ),
        }

    def get_bulk_course_progress(self, user_id: int, course_ids: list[str]) -> dict[str, dict]:
        """Progress of several courses keyed by course ID (missing ones omitted)."""
        if not course_ids:
            return {}
        return {
            record["course_id"]: record
            for record in self.course_progress_repo.get_many(user_id, course_ids)
        }

    def is_lesson_completed(self, user_id: int, course_id: str, lesson_id: str) -> bool:
        progress = self.course_progress_repo.get(user_id, course_id)
        return bool(progress) and lesson_id in progress["completed_lessons"]

    def get_completion_percentage(self, user_id: int, course_id: str) -> int:
        progress = self.course_progress_repo.get(user_id, course_id)
        return progress["progress_percentage"] if progress else 0

    # =========================================================================
    # Lesson Progress
    # =========================================================================

    def start_lesson(
        self,
        user_id: int,
        course_id: str,
        lesson_id: str,
        is_admin: bool = False
    ) -> tuple[dict, bool]:
        """Start or resume a lesson.

        Returns:
            Tuple of (lesson progress, True if newly started)
        """
        self.ensure_access(user_id, course_id, is_admin)
        self._check_lesson(course_id, lesson_id)

        record, created = self.lesson_progress_repo.get_or_create(user_id, course_id, lesson_id)
        if not created:
            record = self.lesson_progress_repo.touch(user_id, course_id, lesson_id)

        self.update_last_accessed(user_id, course_id)
        return record, created

    def record_time(
        self,
        user_id: int,
        course_id: str,
        lesson_id: str,
        seconds: int,
        is_admin: bool = False
    ) -> dict:
        """Add time spent on a lesson."""
        if isinstance(seconds, bool) or not isinstance(seconds, int) or seconds < 0:
            raise ValidationError("Time spent must be a non-negative integer",
                                  fields={"seconds": "Must be an integer >= 0"})
        self.ensure_access(user_id, course_id, is_admin)

        if not self.lesson_progress_repo.get(user_id, course_id, lesson_id):
            raise NotFoundError("Lesson progress", LESSON_NOT_STARTED)

        return self.lesson_progress_repo.add_time(user_id, course_id, lesson_id, seconds)

    def complete_lesson(
        self,
        user_id: int,
        course_id: str,
        lesson_id: str,
        score: Optional[int] = None,
        is_admin: bool = False
    ) -> tuple[dict, bool]:
        """Complete a lesson and update course progress.

        Returns:
            Tuple of (lesson progress, False if it was already completed)
        """
        if score is not None and (
            isinstance(score, bool) or not isinstance(score, int) or not 0 <= score <= 100
        ):
            raise ValidationError("Score must be between 0 and 100",
                                  fields={"score": "Must be an integer from 0 to 100"})
        self.ensure_access(user_id, course_id, is_admin)

        existing = self.lesson_progress_repo.get(user_id, course_id, lesson_id)
        if not existing:
            raise NotFoundError("Lesson progress", LESSON_NOT_STARTED)
        if existing["completed"]:
            return existing, False

        record = self.lesson_progress_repo.mark_completed(user_id, course_id, lesson_id, score)
        self.mark_lesson_complete(user_id, course_id, lesson_id)
        logger.info("lesson_completed", user_id=user_id, course_id=course_id, lesson_id=lesson_id)
        return record, True

    def uncomplete_lesson(
        self,
        user_id: int,
        course_id: str,
        lesson_id: str,
        is_admin: bool = False
    ) -> Optional[dict]:
        """Undo a lesson completion at both levels.

        Returns:
            Updated course progress, or None if the course was never started
        """
        self.ensure_access(user_id, course_id, is_admin)
        if self.lesson_progress_repo.get(user_id, course_id, lesson_id):
            self.lesson_progress_repo.mark_incomplete(user_id, course_id, lesson_id)
        return self.mark_lesson_incomplete(user_id, course_id, lesson_id)

    def get_lesson_progress(self, user_id: int, course_id: str) -> list[dict]:
        """Lesson records of a course in the order they were started."""
        return self.lesson_progress_repo.list_for_course(user_id, course_id)

    def get_aggregated_stats(self, user_id: int, course_id: str) -> dict:
        lessons = self.lesson_progress_repo.list_for_course(user_id, course_id)
        scores = [lesson["score"] for lesson in lessons if lesson.get("score") is not None]
        return {
            "total_lessons": len(lessons),
            "completed_lessons": sum(1 for lesson in lessons if lesson["completed"]),
            "total_time_seconds": sum(lesson["time_spent_seconds"] or 0 for lesson in lessons),
            "total_attempts": sum(lesson["attempts"] or 0 for lesson in lessons),
            "average_score": round(sum(scores) / len(scores), 1) if scores else None,
            "difficult_lessons": [
                lesson["lesson_id"] for lesson in lessons
                if (lesson["attempts"] or 0) >= DIFFICULT_LESSON_ATTEMPTS
            ],
        }

    def get_current_lesson(self, user_id: int, course_id: str) -> Optional[dict]:
        """First unfinished lesson, else the most recently accessed one."""
        lessons = self.lesson_progress_repo.list_for_course(user_id, course_id)
        for lesson in lessons:
            if not lesson["completed"]:
                return lesson
        if not lessons:
            return None
        return max(lessons, key=lambda lesson: lesson["last_accessed_at"] or "")

    def get_course_with_lesson_progress(self, user_id: int, course_id: str) -> dict:
        return {
            "course_id": course_id,
            "course_progress": self.course_progress_repo.get(user_id, course_id),
            "lessons": self.get_lesson_progress(user_id, course_id),
            "stats": self.get_aggregated_stats(user_id, course_id),
            "current_lesson": self.get_current_lesson(user_id, course_id),
        }

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def ensure_access(self, user_id: int, course_id: str, is_admin: bool = False) -> dict:
        """Return the course if the user may study it.

        Raises:
            NotFoundError: Unknown course
            AuthorizationError: Course not purchased (admins are exempt)
        """
        course = self.course_repo.get_by_id(course_id)
        if not course:
            raise NotFoundError("Course")
        if not is_admin and not self.order_repo.has_purchased_course(user_id, course_id):
            raise AuthorizationError("You must purchase this course to access its lessons")
        return course

    def _check_lesson(self, course_id: str, lesson_id: str) -> list[dict]:
        lessons = self.course_repo.get_lessons(course_id)
        if lessons and lesson_id not in {lesson["id"] for lesson in lessons}:
            raise NotFoundError("Lesson")
        return lessons

    def _total_lessons(self, course_id: str, lesson_id: str, total_lessons: Optional[int]) -> Optional[int]:
        if total_lessons is not None:
            if total_lessons <= 0:
                raise ValidationError("Total lessons must be positive")
            return total_lessons
        lessons = self._check_lesson(course_id, lesson_id)
        return len(lessons) or None
