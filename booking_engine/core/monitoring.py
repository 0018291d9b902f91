"""Health checks and monitoring endpoints"""
import logging

import redis
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from booking_engine.config.database import get_db
from booking_engine.config.redis import get_redis
from booking_engine.config.settings import get_settings

logger = logging.getLogger(__name__)

health_router = APIRouter()


@health_router.get("/")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": "booking-engine"}


@health_router.get("/detailed")
def detailed_health_check(db: Session = Depends(get_db)):
    """Detailed health check with dependencies"""
    checks = {
        "api": "healthy",
        "database": "unknown",
        "redis": "unknown",
        "overall": "unknown"
    }

    # Check database
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except SQLAlchemyError as e:
        checks["database"] = f"unhealthy: {str(e)}"

    # Redis is only a dependency when invalidations are broadcast
    if get_settings().CACHE_BROADCAST_ENABLED:
        try:
            get_redis().ping()
            checks["redis"] = "healthy"
        except redis.RedisError as e:
            checks["redis"] = f"unhealthy: {str(e)}"
    else:
        checks["redis"] = "disabled"

    # Overall status
    if all(status == "healthy" for status in checks.values() if status not in ("unknown", "disabled")):
        checks["overall"] = "healthy"
    else:
        checks["overall"] = "degraded"
        logger.warning(f"Health check degraded: {checks}")

    return checks
