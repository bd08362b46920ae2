"""
Health check endpoint.

Used by load balancers and monitoring to verify the application and
its database connection are alive.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ftms.config import get_settings
from ftms.logging_config import get_logger
from ftms.models.base import get_db

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Application health, including a SELECT 1 against the database."""
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError:
        logger.warning("database health check failed", exc_info=True)
        db_status = "unhealthy"

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "service": "ftms",
        "version": get_settings().APP_VERSION,
        "database": db_status,
    }
