"""Catalog routes - courses, digital products and events."""
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import RedirectResponse

from ..database import get_db
from ..dependencies import get_locale, require_user
from .deps import get_catalog_service, get_download_service

router = APIRouter(prefix="/api", tags=["catalog"])


# === Courses ===

@router.get("/courses")
def list_courses(
    request: Request,
    level: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    limit: int = 20,
    offset: int = 0
):
    result = get_catalog_service(get_db()).list_courses(
        get_locale(request), level, min_price, max_price, limit, offset
    )
    return {"success": True, **result}


@router.get("/courses/slug/{slug}")
def get_course_by_slug(slug: str, request: Request):
    course = get_catalog_service(get_db()).get_course_by_slug(slug, get_locale(request))
    return {"success": True, "course": course}


@router.get("/courses/{course_id}")
def get_course(course_id: str, request: Request):
    course = get_catalog_service(get_db()).get_course(course_id, get_locale(request))
    return {"success": True, "course": course}


# === Digital Products ===

@router.get("/products")
def list_products(
    request: Request,
    product_type: Optional[str] = None,
    limit: int = 20,
    offset: int = 0
):
    result = get_catalog_service(get_db()).list_products(
        get_locale(request), product_type, limit, offset
    )
    return {"success": True, **result}


@router.get("/products/{product_id}")
def get_product(product_id: str, request: Request):
    product = get_catalog_service(get_db()).get_product(product_id, get_locale(request))
    return {"success": True, "product": product}


@router.get("/products/{product_id}/download")
def download_product(product_id: str, request: Request):
    """Redirect a buyer to a time-limited link to the product file."""
    user = require_user(request)
    download = get_download_service(get_db()).get_download(
        user["id"],
        product_id,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent")
    )
    response = RedirectResponse(url=download["url"], status_code=302)
    if download["downloads_remaining"] is not None:
        response.headers["X-Downloads-Remaining"] = str(download["downloads_remaining"])
    return response


# === Events ===

@router.get("/events")
def list_events(
    request: Request,
    city: Optional[str] = None,
    limit: int = 20,
    offset: int = 0
):
    result = get_catalog_service(get_db()).list_events(get_locale(request), city, limit, offset)
    return {"success": True, **result}


@router.get("/events/{event_id}")
def get_event(event_id: str, request: Request):
    event = get_catalog_service(get_db()).get_event(event_id, get_locale(request))
    return {"success": True, "event": event}
