"""Review service - course reviews and their moderation.

Only buyers of a course may review it, once. New reviews wait for an admin
to approve or reject them; the author is emailed about the decision in
their preferred language.
"""
import math
import sqlite3
from typing import Optional

from ...errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
    log_error,
)
from ...infrastructure.repositories import (
    CourseRepository,
    OrderRepository,
    ReviewRepository,
)
from ...log import get_logger
from .notification_service import NotificationService

logger = get_logger(__name__)

MAX_PAGE_SIZE = 100


def validate_rating(rating) -> int:
    """Ratings are whole numbers from 1 to 5."""
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValidationError("Rating must be between 1 and 5", fields={"rating": "Must be an integer from 1 to 5"})
    return rating


def clean_comment(comment: Optional[str]) -> Optional[str]:
    """Trimmed comment, None when blank."""
    if comment is None:
        return None
    return comment.strip() or None


class ReviewService:
    """Service for course reviews.

    Responsibilities:
    - Review submission and editing by buyers
    - Public listing and rating statistics
    - Moderation with email notification
    """

    def __init__(
        self,
        review_repository: ReviewRepository,
        order_repository: OrderRepository,
        course_repository: CourseRepository,
        notification_service: Optional[NotificationService] = None
    ):
        self.review_repo = review_repository
        self.order_repo = order_repository
        self.course_repo = course_repository
        self.notifications = notification_service

    # =========================================================================
    # Authoring
    # =========================================================================

    def create_review(
        self,
        user_id: int,
        course_id: str,
        rating: int,
        comment: Optional[str] = None
    ) -> dict:
        """Submit a review for a purchased course.

        Raises:
            ValidationError: Invalid rating
            NotFoundError: Unknown course
            AuthorizationError: Course not purchased
            ConflictError: Course already reviewed by the user
        """
        validate_rating(rating)
        comment = clean_comment(comment)

        if not self.course_repo.get_by_id(course_id):
            raise NotFoundError("Course")

        if not self.order_repo.has_purchased_course(user_id, course_id):
            raise AuthorizationError("You can only review courses you have purchased")

        if self.review_repo.get_for_user_course(user_id, course_id):
            raise ConflictError("You have already reviewed this course")

        try:
            review_id = self.review_repo.create(user_id, course_id, rating, comment)
        except sqlite3.IntegrityError:
            raise ConflictError("You have already reviewed this course")

        logger.info("review_created", review_id=review_id, course_id=course_id, rating=rating)
        return self.review_repo.get_by_id(review_id)

    def update_review(
        self,
        review_id: str,
        user_id: int,
        rating: Optional[int] = None,
        comment: Optional[str] = None
    ) -> dict:
        """Edit an own, not yet approved review.

        Raises:
            NotFoundError: Unknown review
            AuthorizationError: Not the author
            ValidationError: Approved review, invalid rating or nothing to update
        """
        if rating is not None:
            validate_rating(rating)

        review = self.review_repo.get_by_id(review_id)
        if not review:
            raise NotFoundError("Review")

        if review["user_id"] != user_id:
            raise AuthorizationError("You can only update your own reviews")

        if review["is_approved"]:
            raise ValidationError(
                "Cannot update an approved review. Please contact support if you need to make changes."
            )

        updates = {}
        if rating is not None:
            updates["rating"] = rating
        if comment is not None:
            updates["comment"] = clean_comment(comment)
        if not updates:
            raise ValidationError("No fields to update")

        self.review_repo.update(review_id, **updates)
        return self.review_repo.get_by_id(review_id)

    def delete_review(self, review_id: str, user_id: int, is_admin: bool = False) -> bool:
        """Delete a review.

        Admins may delete any review; users only their own unapproved ones.
        """
        review = self.review_repo.get_by_id(review_id)
        if not review:
            raise NotFoundError("Review")

        if not is_admin:
            if review["user_id"] != user_id:
                raise AuthorizationError("You can only delete your own reviews")
            if review["is_approved"]:
                raise AuthorizationError("Cannot delete an approved review. Please contact support.")

        return self.review_repo.delete(review_id)

    # =========================================================================
    # Reading
    # =========================================================================

    def get_review_by_id(self, review_id: str) -> dict:
        review = self.review_repo.get_by_id(review_id)
        if not review:
            raise NotFoundError("Review")
        return review

    def get_reviews(
        self,
        course_id: Optional[str] = None,
        user_id: Optional[int] = None,
        is_approved: Optional[bool] = True,
        min_rating: Optional[int] = None,
        page: int = 1,
        limit: int = 20,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        pending_only: bool = False
    ) -> dict:
        """Paginated reviews.

        ``page`` is clamped to >= 1 and ``limit`` to 1-100. Unknown sort
        fields fall back to created_at.

        Returns:
            Dict with reviews, total, page, limit, total_pages, has_more
        """
        page = max(1, int(page))
        limit = max(1, min(MAX_PAGE_SIZE, int(limit)))
        offset = (page - 1) * limit

        reviews, total = self.review_repo.list_reviews(
            course_id=course_id,
            user_id=user_id,
            is_approved=is_approved,
            pending_only=pending_only,
            min_rating=min_rating,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            offset=offset,
        )

        return {
            "reviews": reviews,
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": math.ceil(total / limit) if total else 0,
            "has_more": offset + len(reviews) < total,
        }

    def get_pending_reviews(self, page: int = 1, limit: int = 20) -> dict:
        """Reviews awaiting moderation, oldest first."""
        return self.get_reviews(
            is_approved=None,
            pending_only=True,
            page=page,
            limit=limit,
            sort_order="asc",
        )

    def get_course_review_stats(self, course_id: str) -> dict:
        return self.review_repo.get_stats(course_id)

    def can_user_review_course(self, user_id: int, course_id: str) -> bool:
        """True if the user bought the course and hasn't reviewed it yet."""
        if not self.order_repo.has_purchased_course(user_id, course_id):
            return False
        return self.review_repo.get_for_user_course(user_id, course_id) is None

    def get_user_review_for_course(self, user_id: int, course_id: str) -> Optional[dict]:
        return self.review_repo.get_for_user_course(user_id, course_id)

    def get_pending_reviews_count(self) -> int:
        return self.review_repo.count_pending()

    # =========================================================================
    # Moderation
    # =========================================================================

    def approve_review(self, review_id: str) -> dict:
        """Publish a review and notify its author."""
        if not self.review_repo.set_approval(review_id, True):
            raise NotFoundError("Review")

        review = self.review_repo.get_by_id(review_id)
        logger.info("review_approved", review_id=review_id)
        self._notify(review, approved=True)
        return review

    def reject_review(self, review_id: str) -> dict:
        """Reject a review (the row is kept) and notify its author."""
        if not self.review_repo.set_approval(review_id, False):
            raise NotFoundError("Review")

        review = self.review_repo.get_by_id(review_id)
        logger.info("review_rejected", review_id=review_id)
        self._notify(review, approved=False)
        return review

    def _notify(self, review: dict, approved: bool) -> None:
        """Send the moderation email; failures never reach the caller."""
        if not self.notifications:
            return

        try:
            if approved:
                result = self.notifications.send_review_approval(review)
            else:
                result = self.notifications.send_review_rejection(review)
        except Exception as e:
            log_error(e, context="review_notification", review_id=review["id"])
            return

        if not result.success:
            logger.warning(
                "review_notification_not_sent",
                review_id=review["id"],
                error=result.error,
            )
