# /app/db/redis.py
from typing import Optional
from redis.asyncio import Redis
from fastapi import Request
import logging

logger = logging.getLogger(__name__)


async def get_redis(request: Request) -> Optional[Redis]:
    """Redis client opened at startup; None when the app runs without Redis."""
    redis = getattr(request.app.state, "redis", None)
    if redis is None:
        logger.warning("Redis is not available, rate limiting is disabled for this request")
    return redis
