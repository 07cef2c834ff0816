"""Learning progress routes - course progress and lesson tracking."""
from fastapi import APIRouter, Request
from pydantic import BaseModel

from ..database import get_db
from ..dependencies import get_locale, is_admin, require_user
from ..errors import NotFoundError
from ..i18n import t
from .deps import get_progress_service

router = APIRouter(prefix="/api", tags=["progress"])


class LessonInput(BaseModel):
    course_id: str


class LessonTimeInput(BaseModel):
    course_id: str
    seconds: int


class LessonCompleteInput(BaseModel):
    course_id: str
    score: int | None = None


# === Course Progress ===

@router.get("/progress")
def list_progress(request: Request, include_completed: bool = True):
    user = require_user(request)
    progress = get_progress_service(get_db()).get_user_progress(user["id"], include_completed)
    return {"success": True, "progress": progress}


@router.get("/progress/stats")
def progress_stats(request: Request):
    user = require_user(request)
    return {"success": True, "stats": get_progress_service(get_db()).get_progress_stats(user["id"])}


@router.get("/courses/{course_id}/progress")
def course_progress(course_id: str, request: Request):
    """Course progress with per-lesson records and statistics."""
    user = require_user(request)
    service = get_progress_service(get_db())
    service.ensure_access(user["id"], course_id, is_admin(user))
    return {"success": True, **service.get_course_with_lesson_progress(user["id"], course_id)}


@router.delete("/courses/{course_id}/progress")
def reset_progress(course_id: str, request: Request):
    user = require_user(request)
    if not get_progress_service(get_db()).reset_course_progress(user["id"], course_id):
        raise NotFoundError("Course progress")
    return {"success": True, "message": t(get_locale(request), "progress.progress_reset")}


# === Lessons ===

@router.post("/lessons/{lesson_id}/start")
def start_lesson(lesson_id: str, data: LessonInput, request: Request):
    user = require_user(request)
    record, created = get_progress_service(get_db()).start_lesson(
        user["id"], data.course_id, lesson_id, is_admin(user)
    )
    key = "progress.lesson_started" if created else "progress.lesson_resumed"
    return {"success": True, "progress": record, "message": t(get_locale(request), key)}


@router.post("/lessons/{lesson_id}/time")
def record_time(lesson_id: str, data: LessonTimeInput, request: Request):
    user = require_user(request)
    record = get_progress_service(get_db()).record_time(
        user["id"], data.course_id, lesson_id, data.seconds, is_admin(user)
    )
    return {"success": True, "progress": record, "message": t(get_locale(request), "progress.time_recorded")}


@router.post("/lessons/{lesson_id}/complete")
def complete_lesson(lesson_id: str, data: LessonCompleteInput, request: Request):
    user = require_user(request)
    service = get_progress_service(get_db())
    record, newly_completed = service.complete_lesson(
        user["id"], data.course_id, lesson_id, data.score, is_admin(user)
    )
    key = "progress.lesson_completed" if newly_completed else "progress.lesson_already_completed"
    return {
        "success": True,
        "progress": record,
        "course_progress": service.get_course_progress(user["id"], data.course_id),
        "message": t(get_locale(request), key),
    }


@router.post("/lessons/{lesson_id}/incomplete")
def incomplete_lesson(lesson_id: str, data: LessonInput, request: Request):
    user = require_user(request)
    course_progress = get_progress_service(get_db()).uncomplete_lesson(
        user["id"], data.course_id, lesson_id, is_admin(user)
    )
    return {
        "success": True,
        "course_progress": course_progress,
        "message": t(get_locale(request), "progress.lesson_marked_incomplete"),
    }
