"""Health check endpoints."""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_redis_client
from core.redis import RedisClient
from schemas.base import ApiResponse, CamelModel, success


logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(CamelModel):
    """Health check response."""

    status: str
    database: str
    cache: str


@router.get("/health", response_model=ApiResponse[HealthResponse])
async def health_check(
    db: AsyncSession = Depends(get_async_session),
    redis_client: RedisClient | None = Depends(get_redis_client),
) -> dict:
    """Check database and cache health. A missing cache only degrades the service."""
    db_status = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        db_status = "unhealthy"

    if redis_client is None or not redis_client.enabled:
        cache_status = "disabled"
    elif await redis_client.ping():
        cache_status = "healthy"
    else:
        cache_status = "unhealthy"

    healthy = db_status == "healthy" and cache_status != "unhealthy"
    return success(
        {
            "status": "healthy" if healthy else "degraded",
            "database": db_status,
            "cache": cache_status,
        },
    )
