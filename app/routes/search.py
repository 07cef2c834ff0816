"""Search routes."""
from typing import Optional

from fastapi import APIRouter, Request

from ..application.services import SearchOptions
from ..database import get_db
from ..dependencies import get_locale
from .deps import get_search_service

router = APIRouter(prefix="/api/search", tags=["search"])


@router.get("")
def search(
    request: Request,
    q: str = "",
    type: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    level: Optional[str] = None,
    product_type: Optional[str] = None,
    city: Optional[str] = None,
    limit: int = 20,
    offset: int = 0
):
    """Ranked search over courses, products and upcoming events."""
    options = SearchOptions(
        query=q,
        type=type or None,
        min_price=min_price,
        max_price=max_price,
        level=level or None,
        product_type=product_type or None,
        city=city,
        limit=limit,
        offset=offset,
        locale=get_locale(request),
    )
    result = get_search_service(get_db()).search(options)
    return {"success": True, "query": options.query, **result}


@router.get("/suggestions")
def suggestions(request: Request, q: str = "", limit: int = 5):
    titles = get_search_service(get_db()).get_search_suggestions(q, limit, get_locale(request))
    return {"success": True, "suggestions": titles}


@router.get("/filters")
def filters():
    return {"success": True, **get_search_service(get_db()).get_filter_options()}
