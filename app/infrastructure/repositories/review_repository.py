"""Review repository - course reviews and their moderation state.

A review is pending while ``is_approved = 0`` and ``moderated_at IS NULL``.
Approval sets ``is_approved = 1``; rejection keeps ``is_approved = 0`` but
records ``moderated_at``, so rejected reviews leave the moderation queue.
Editing a review clears ``moderated_at``, which sends a rejected review
back to the queue.
"""
from typing import Optional

from .base import Repository

# Whitelisted ORDER BY columns
SORT_COLUMNS = {
    "created_at": "r.created_at",
    "rating": "r.rating",
    "updated_at": "r.updated_at",
}

_DETAIL_SELECT = """
    SELECT r.*,
           u.name AS user_name,
           u.email AS user_email,
           u.preferred_language AS user_language,
           c.title AS course_title,
           c.title_es AS course_title_es,
           c.slug AS course_slug,
           EXISTS (
               SELECT 1 FROM orders o
               JOIN order_items oi ON oi.order_id = o.id
               WHERE o.user_id = r.user_id
                 AND oi.course_id = r.course_id
                 AND o.status = 'completed'
           ) AS is_verified_purchase
    FROM reviews r
    JOIN users u ON u.id = r.user_id
    JOIN courses c ON c.id = r.course_id
"""


class ReviewRepository(Repository):
    """Repository for review entity operations."""

    def create(self, user_id: int, course_id: str, rating: int, comment: Optional[str]) -> str:
        """Insert an unapproved review.

        Raises:
            sqlite3.IntegrityError: If the user already reviewed the course
        """
        review_id = self._new_id()
        now = self._now()
        self._execute(
            """INSERT INTO reviews (id, user_id, course_id, rating, comment, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (review_id, user_id, course_id, rating, comment, now, now)
        )
        self._commit()
        return review_id

    def get_by_id(self, review_id: str) -> dict | None:
        """Review joined with author, course and verified-purchase flag."""
        return self._decode(self._fetchone(f"{_DETAIL_SELECT} WHERE r.id = ?", (review_id,)))

    def get_for_user_course(self, user_id: int, course_id: str) -> dict | None:
        return self._decode(self._fetchone(
            f"{_DETAIL_SELECT} WHERE r.user_id = ? AND r.course_id = ?",
            (user_id, course_id)
        ))

    def update(self, review_id: str, **kwargs) -> bool:
        """Update rating and/or comment and return the review to moderation."""
        allowed_fields = {"rating", "comment"}
        updates = {k: v for k, v in kwargs.items() if k in allowed_fields}
        if not updates:
            return False

        updates["moderated_at"] = None
        updates["updated_at"] = self._now()
        set_clause = ", ".join(f"{k} = ?" for k in updates)
        cursor = self._execute(
            f"UPDATE reviews SET {set_clause} WHERE id = ?",
            (*updates.values(), review_id)
        )
        self._commit()
        return cursor.rowcount > 0

    def set_approval(self, review_id: str, approved: bool) -> bool:
        """Record a moderation decision."""
        now = self._now()
        cursor = self._execute(
            "UPDATE reviews SET is_approved = ?, moderated_at = ?, updated_at = ? WHERE id = ?",
            (1 if approved else 0, now, now, review_id)
        )
        self._commit()
        return cursor.rowcount > 0

    def delete(self, review_id: str) -> bool:
        cursor = self._execute("DELETE FROM reviews WHERE id = ?", (review_id,))
        self._commit()
        return cursor.rowcount > 0

    def list_reviews(
        self,
        course_id: Optional[str] = None,
        user_id: Optional[int] = None,
        is_approved: Optional[bool] = True,
        pending_only: bool = False,
        min_rating: Optional[int] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        limit: int = 20,
        offset: int = 0
    ) -> tuple[list[dict], int]:
        """Filtered, sorted page of reviews.

        Args:
            is_approved: True/False to filter on approval, None for all
            pending_only: Only reviews awaiting a moderation decision

        Returns:
            Tuple of (reviews, total matching)
        """
        where: list[str] = []
        params: list = []
        if course_id:
            where.append("r.course_id = ?")
            params.append(course_id)
        if user_id is not None:
            where.append("r.user_id = ?")
            params.append(user_id)
        if pending_only:
            where.append("r.is_approved = 0 AND r.moderated_at IS NULL")
        elif is_approved is not None:
            where.append("r.is_approved = ?")
            params.append(1 if is_approved else 0)
        if min_rating is not None:
            where.append("r.rating >= ?")
            params.append(min_rating)
        where_sql = f"WHERE {' AND '.join(where)}" if where else ""

        order_column = SORT_COLUMNS.get(sort_by, SORT_COLUMNS["created_at"])
        direction = "ASC" if str(sort_order).lower() == "asc" else "DESC"

        total = self._count(f"SELECT COUNT(*) AS count FROM reviews r {where_sql}", tuple(params))
        rows = self._fetchall(
            f"""{_DETAIL_SELECT} {where_sql}
                ORDER BY {order_column} {direction}, r.id ASC
                LIMIT ? OFFSET ?""",
            (*params, limit, offset)
        )
        return [self._decode(row) for row in rows], total

    def get_stats(self, course_id: str) -> dict:
        """Count, average and per-star distribution of approved reviews."""
        rows = self._fetchall(
            """SELECT rating, COUNT(*) AS count FROM reviews
               WHERE course_id = ? AND is_approved = 1
               GROUP BY rating""",
            (course_id,)
        )
        distribution = {star: 0 for star in range(1, 6)}
        for row in rows:
            distribution[row["rating"]] = row["count"]

        total = sum(distribution.values())
        average = (
            round(sum(star * count for star, count in distribution.items()) / total, 1)
            if total else 0.0
        )
        return {
            "total_reviews": total,
            "average_rating": average,
            "rating_distribution": distribution,
        }

    def count_pending(self) -> int:
        return self._count(
            "SELECT COUNT(*) AS count FROM reviews WHERE is_approved = 0 AND moderated_at IS NULL"
        )

    @staticmethod
    def _decode(review: dict | None) -> dict | None:
        if review is not None:
            review["is_approved"] = bool(review.get("is_approved"))
            if "is_verified_purchase" in review:
                review["is_verified_purchase"] = bool(review["is_verified_purchase"])
            review["status"] = (
                "approved" if review["is_approved"]
                else "rejected" if review.get("moderated_at")
                else "pending"
            )
        return review
