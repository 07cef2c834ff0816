"""Review routes - submitting, editing and listing course reviews."""
from fastapi import APIRouter, Request
from pydantic import BaseModel

from ..database import get_db
from ..dependencies import get_current_user, get_locale, is_admin, require_user
from ..i18n import t
from .deps import get_review_service

router = APIRouter(prefix="/api", tags=["reviews"])


class ReviewCreate(BaseModel):
    course_id: str
    rating: int
    comment: str | None = None


class ReviewUpdate(BaseModel):
    rating: int | None = None
    comment: str | None = None


@router.post("/reviews", status_code=201)
def create_review(data: ReviewCreate, request: Request):
    user = require_user(request)
    review = get_review_service(get_db()).create_review(
        user["id"], data.course_id, data.rating, data.comment
    )
    return {"success": True, "review": review, "message": t(get_locale(request), "reviews.submitted")}


@router.put("/reviews/{review_id}")
def update_review(review_id: str, data: ReviewUpdate, request: Request):
    user = require_user(request)
    review = get_review_service(get_db()).update_review(
        review_id, user["id"], rating=data.rating, comment=data.comment
    )
    return {"success": True, "review": review, "message": t(get_locale(request), "reviews.updated")}


@router.delete("/reviews/{review_id}")
def delete_review(review_id: str, request: Request):
    user = require_user(request)
    get_review_service(get_db()).delete_review(review_id, user["id"], is_admin(user))
    return {"success": True, "message": t(get_locale(request), "reviews.deleted")}


@router.get("/courses/{course_id}/reviews")
def course_reviews(
    course_id: str,
    request: Request,
    page: int = 1,
    limit: int = 20,
    min_rating: int | None = None,
    sort_by: str = "created_at",
    sort_order: str = "desc"
):
    """Approved reviews of a course, plus the caller's own review if logged in."""
    service = get_review_service(get_db())
    result = service.get_reviews(
        course_id=course_id,
        min_rating=min_rating,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )

    user = get_current_user(request)
    if user:
        result["user_review"] = service.get_user_review_for_course(user["id"], course_id)
        result["can_review"] = service.can_user_review_course(user["id"], course_id)
    return {"success": True, **result}


@router.get("/courses/{course_id}/reviews/stats")
def course_review_stats(course_id: str):
    return {"success": True, "stats": get_review_service(get_db()).get_course_review_stats(course_id)}
