"""Current user routes - profile and language preference."""
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .. import config
from ..config import LOCALE_COOKIE, LOCALE_COOKIE_MAX_AGE
from ..database import get_db
from ..dependencies import require_user
from ..errors import NotFoundError
from ..i18n import t
from ..infrastructure.repositories import UserRepository
from .deps import get_user_preference_service

router = APIRouter(prefix="/api/user", tags=["user"])


class LanguageInput(BaseModel):
    language: str


@router.get("/profile")
def get_profile(request: Request):
    user = require_user(request)
    profile = UserRepository(get_db()).get_by_id(user["id"])
    if not profile:
        raise NotFoundError("User")
    return {"success": True, "user": profile}


@router.put("/language")
def update_language(data: LanguageInput, request: Request):
    """Store the preferred language and switch the UI locale to it."""
    user = require_user(request)
    language = get_user_preference_service(get_db()).update_language_preference(
        user["id"], data.language
    )

    response = JSONResponse(content={
        "success": True,
        "language": language,
        "message": t(language, "user.language_updated"),
    })
    response.set_cookie(
        key=LOCALE_COOKIE,
        value=language,
        max_age=LOCALE_COOKIE_MAX_AGE,
        path="/",
        httponly=False,
        samesite="lax",
        secure=config.IS_PRODUCTION
    )
    return response
