from fastapi import APIRouter, Request
from sqlalchemy import text

from lendfi.config import settings
from lendfi.utils.dates import utcnow

router = APIRouter(tags=["health"])


@router.get("/health")
def health_check(request: Request):
    database = "connected"
    try:
        with request.app.state.db.session() as session:
            session.execute(text("SELECT 1"))
    except Exception:
        database = "disconnected"

    return {
        "status": "healthy" if database == "connected" else "degraded",
        "app": settings.APP_NAME,
        "environment": settings.ENVIRONMENT,
        "database": database,
        "timestamp": utcnow().isoformat(),
    }
