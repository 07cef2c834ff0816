"""Course Marketplace - FastAPI Entry Point."""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from . import config
from .database import cleanup_expired_reset_tokens, cleanup_expired_sessions, init_db
from .errors import AppError, ValidationError, log_error, normalize_error
from .log import configure_logging, get_logger
from .middleware import AuthMiddleware, CSRFMiddleware, I18nMiddleware

# Import routers
from .routes.admin import router as admin_router
from .routes.auth import router as auth_router
from .routes.bookings import router as bookings_router
from .routes.catalog import router as catalog_router
from .routes.health import router as health_router
from .routes.progress import router as progress_router
from .routes.reviews import router as reviews_router
from .routes.search import router as search_router
from .routes.user import router as user_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    configure_logging(json_output=config.LOG_JSON, level=config.LOG_LEVEL)
    init_db()
    removed = cleanup_expired_sessions()
    tokens_removed = cleanup_expired_reset_tokens()
    logger.info(
        "startup_complete",
        environment=config.ENVIRONMENT,
        expired_sessions_removed=removed,
        expired_reset_tokens_removed=tokens_removed,
    )
    yield


app = FastAPI(title="Course Marketplace", lifespan=lifespan)


# === Error Handling ===

def _error_response(error: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content={"success": False, "error": error.to_dict()}
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    log_error(exc, path=request.url.path, method=request.method)
    return _error_response(exc)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = {}
    for error in exc.errors():
        # Drop the "body"/"query" prefix from the location
        loc = [str(part) for part in error.get("loc", ())[1:]]
        fields[".".join(loc) or "request"] = error.get("msg", "Invalid value")
    error = ValidationError("Invalid request data", fields)
    log_error(error, path=request.url.path, method=request.method)
    return _error_response(error)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    log_error(exc, path=request.url.path, method=request.method)
    return _error_response(normalize_error(exc))


# Add middleware (order matters - first added = last executed)
app.add_middleware(AuthMiddleware)
app.add_middleware(CSRFMiddleware)
app.add_middleware(I18nMiddleware)

# Locally stored product files
app.mount("/uploads", StaticFiles(directory=config.UPLOADS_DIR), name="uploads")

# Include routers
app.include_router(auth_router)
app.include_router(user_router)
app.include_router(catalog_router)
app.include_router(bookings_router)
app.include_router(search_router)
app.include_router(progress_router)
app.include_router(reviews_router)
app.include_router(admin_router)
app.include_router(health_router)
