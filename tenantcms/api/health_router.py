"""
Health check endpoints for monitoring and orchestration.

Provides:
- Liveness probe: is the process up?
- Readiness probe: can the database be reached?
- Detailed health: database and Redis status

Redis only backs the public tenant-by-slug cache, so an unreachable Redis
degrades the service but never makes it unready.
"""

import time
from typing import Any

import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from tenantcms.config import settings
from tenantcms.core.cache import cache_manager
from tenantcms.core.database import db_manager

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Health"])


async def _check_database() -> dict[str, Any]:
    result: dict[str, Any] = {"status": "unhealthy", "error": "no session"}
    try:
        async for db in db_manager.get_session():
            start = time.perf_counter()
            await db.execute(text("SELECT 1"))
            result = {
                "status": "healthy",
                "response_time_ms": round((time.perf_counter() - start) * 1000, 2),
                "dialect": db.bind.dialect.name,
            }
    except Exception as e:
        logger.warning("health_database_unreachable", error=str(e))
        result = {"status": "unhealthy", "error": str(e)}
    return result


async def _check_redis() -> dict[str, Any]:
    try:
        start = time.perf_counter()
        await cache_manager.client.ping()
        return {
            "status": "healthy",
            "response_time_ms": round((time.perf_counter() - start) * 1000, 2),
        }
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}


@router.get("/health/live")
async def liveness() -> dict:
    """Liveness probe. 200 while the process serves requests."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness() -> JSONResponse:
    """
    Readiness probe.

    Returns:
        200: database reachable
        503: database unavailable
    """
    database = await _check_database()
    is_ready = database["status"] == "healthy"

    return JSONResponse(
        status_code=status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if is_ready else "not_ready",
            "checks": {"database": database},
        },
    )


@router.get("/health")
async def health() -> dict:
    """Detailed health with the status of every dependency."""
    checks = {
        "database": await _check_database(),
        "redis": await _check_redis(),
    }
    overall_status = "healthy"
    if any(check["status"] != "healthy" for check in checks.values()):
        overall_status = "degraded"

    return {
        "status": overall_status,
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks,
    }
