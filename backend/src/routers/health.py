# backend/src/routers/health.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import datetime, timezone
from ..dependencies import get_db_session, get_cache
from ..services.cache import CacheService
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(
    db: AsyncSession = Depends(get_db_session),
    cache: CacheService = Depends(get_cache),
):
    """Service health"""
    db_ok = False
    try:
        await db.execute(select(1))
        db_ok = True
    except Exception as e:
        logger.error(f"Health check: database unavailable: {e}")

    redis_ok = await cache.ping()

    return {
        "status": "healthy" if db_ok and redis_ok else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": "connected" if db_ok else "disconnected",
        "redis": "connected" if redis_ok else "disconnected",
        "service": "nightlife-discovery-api",
        "version": "1.0.0"
    }
