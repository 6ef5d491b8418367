"""Health check endpoints."""

from typing import Any

import structlog
from fastapi import APIRouter, status
from fastapi.responses import ORJSONResponse

from src.config import get_settings
from src.core.database import AsyncCassandraConnection, ping_cassandra
from src.core.redis import get_redis


logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


async def _redis_status() -> str:
    settings = get_settings()
    if not settings.redis_enabled:
        return "disabled"
    client = get_redis()
    if client is None:
        return "unavailable"
    try:
        await client.ping()
    except Exception as e:
        logger.warning("redis_ping_failed", error=str(e))
        return "unavailable"
    return "ok"


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness check - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness() -> ORJSONResponse:
    """Readiness check - Cassandra must answer; Redis is optional."""
    settings = get_settings()
    cassandra_ok = AsyncCassandraConnection.is_connected() and await ping_cassandra(
        AsyncCassandraConnection.get_session()
    )
    body: dict[str, Any] = {
        "status": "ready" if cassandra_ok else "not_ready",
        "environment": settings.environment,
        "checks": {
            "cassandra": "ok" if cassandra_ok else "unavailable",
            "redis": await _redis_status(),
        },
    }
    return ORJSONResponse(
        status_code=status.HTTP_200_OK
        if cassandra_ok
        else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=body,
    )


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
