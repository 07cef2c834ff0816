"""Service health route."""
from fastapi import APIRouter

from .. import config
from ..database import get_db

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
def health():
    """Liveness check; also verifies the database answers."""
    get_db().execute("SELECT 1").fetchone()
    return {"success": True, "status": "ok", "environment": config.ENVIRONMENT}
