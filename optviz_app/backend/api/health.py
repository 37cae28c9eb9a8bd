"""
Health check endpoints.
"""

from fastapi import APIRouter, Depends
from datetime import datetime, timezone
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import logging

from optviz_app.backend.backend_core.config import settings
from optviz_app.backend.backend_core.database import get_db

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("")
@router.get("/")
def health_check():
    """Basic health check."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.APP_VERSION,
    }


@router.get("/ready")
def readiness_check(db: Session = Depends(get_db)):
    """Readiness check - verifies the database answers."""
    checks = {}
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except SQLAlchemyError as e:
        logger.warning(f"Readiness check: database unavailable: {e}")
        checks["database"] = "unavailable"

    all_ready = all(status == "ok" for status in checks.values())

    return {
        "status": "ready" if all_ready else "not_ready",
        "checks": checks,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
