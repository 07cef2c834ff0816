"""Admin routes - review moderation, translations and file uploads."""
from typing import Optional

from fastapi import APIRouter, File, Form, Request, UploadFile
from pydantic import BaseModel

from .. import config
from ..database import get_db
from ..dependencies import get_locale, require_admin
from ..i18n import t
from .deps import get_review_service, get_translation_service, get_upload_service

router = APIRouter(prefix="/api/admin", tags=["admin"])


class TranslationInput(BaseModel):
    title_es: Optional[str] = None
    description_es: Optional[str] = None
    long_description_es: Optional[str] = None


# === Review Moderation ===

@router.get("/reviews/pending")
def pending_reviews(request: Request, page: int = 1, limit: int = 20):
    """Reviews awaiting moderation, oldest first."""
    require_admin(request)
    return {"success": True, **get_review_service(get_db()).get_pending_reviews(page, limit)}


@router.post("/reviews/{review_id}/approve")
def approve_review(review_id: str, request: Request):
    require_admin(request)
    review = get_review_service(get_db()).approve_review(review_id)
    return {"success": True, "review": review, "message": t(get_locale(request), "reviews.approved")}


@router.post("/reviews/{review_id}/reject")
def reject_review(review_id: str, request: Request):
    require_admin(request)
    review = get_review_service(get_db()).reject_review(review_id)
    return {"success": True, "review": review, "message": t(get_locale(request), "reviews.rejected")}


# === Translations ===

@router.get("/translations/stats")
def translation_stats(request: Request):
    require_admin(request)
    return {"success": True, "stats": get_translation_service(get_db()).get_translation_statistics()}


@router.get("/translations/{content_type}")
def list_translations(content_type: str, request: Request):
    require_admin(request)
    items = get_translation_service(get_db()).list_translations(content_type)
    return {"success": True, "type": content_type, "items": items}


@router.put("/translations/{content_type}/{content_id}")
def update_translation(content_type: str, content_id: str, data: TranslationInput, request: Request):
    """Set the Spanish title and descriptions of a course, product or event."""
    require_admin(request)
    item = get_translation_service(get_db()).update_translation(
        content_type,
        content_id,
        data.title_es,
        data.description_es,
        data.long_description_es
    )
    return {"success": True, "item": item}


# === Uploads ===

@router.post("/uploads", status_code=201)
async def upload_file(
    request: Request,
    file: UploadFile = File(...),
    folder: str = Form("products")
):
    """Store a product file and return its key and URL."""
    require_admin(request)
    service = get_upload_service()
    # Reject oversized files before buffering them
    if file.size is not None:
        service.check_size(file.size)
    content = await file.read(config.MAX_UPLOAD_SIZE + 1)
    result = await service.upload_file(
        content, file.filename or "", file.content_type, folder
    )
    return {"success": True, "file": result}


@router.get("/uploads/info")
def upload_info(request: Request):
    require_admin(request)
    return {"success": True, **get_upload_service().get_storage_info()}
