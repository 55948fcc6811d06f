"""
Shared utility functions for routers and services
"""
import json
import logging
from datetime import datetime, timezone
from typing import Optional, Callable, Any, Awaitable

import redis
from fastapi import HTTPException
from pydantic.alias_generators import to_camel

from config.settings import settings

logger = logging.getLogger(__name__)

# Redis client for caching
_redis_cache_client = None
_redis_cache_available = False

redis_url = settings.redis_url
if redis_url:
    try:
        # Parse Redis URL (supports redis:// and redis://:password@host:port)
        _redis_cache_client = redis.from_url(redis_url, decode_responses=True)
        # Test connection
        _redis_cache_client.ping()
        _redis_cache_available = True
        logger.info("Redis connected successfully for caching")
    except Exception as e:
        logger.warning(f"Redis connection failed: {e}. Caching will fall back to direct execution.")
        _redis_cache_client = None
        _redis_cache_available = False
else:
    logger.info("REDIS_URL not set. Caching will fall back to direct execution.")


async def get_cached(key: str, fallback_func: Callable[[], Awaitable[Any]], ttl_seconds: int) -> Any:
    """
    Distributed caching utility with Redis fallback.

    Attempts to fetch data from Redis cache. If not found or Redis is unavailable,
    executes the fallback function and stores the result in Redis with TTL.

    Args:
        key: Redis cache key (e.g., "membership:products")
        fallback_func: Async callable that returns the data to cache
        ttl_seconds: Time-to-live in seconds for the cached value

    Returns:
        The cached value or the result from fallback_func
    """
    if _redis_cache_available and _redis_cache_client:
        try:
            cached_value = _redis_cache_client.get(key)
            if cached_value is not None:
                try:
                    return json.loads(cached_value)
                except (json.JSONDecodeError, TypeError):
                    return cached_value
        except Exception as e:
            logger.warning(f"Redis cache get failed for key '{key}': {e}. Executing fallback.")

    # Cache miss or Redis unavailable - execute fallback
    result = await fallback_func()

    if _redis_cache_available and _redis_cache_client:
        try:
            if isinstance(result, (dict, list)):
                cache_value = json.dumps(result, default=str)
            else:
                cache_value = str(result)
            _redis_cache_client.setex(key, ttl_seconds, cache_value)
        except Exception as e:
            logger.warning(f"Redis cache set failed for key '{key}': {e}. Result not cached.")

    return result


def invalidate_cached(*keys: str) -> None:
    """Drop cached keys after a write; no-op without Redis"""
    if not (_redis_cache_available and _redis_cache_client) or not keys:
        return
    try:
        _redis_cache_client.delete(*keys)
    except Exception as e:
        logger.warning(f"Redis cache delete failed for keys {keys}: {e}")


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Store datetimes as naive UTC, matching datetime.utcnow() defaults"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def page_meta(total: int, page: int, limit: int) -> dict:
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": (total + limit - 1) // limit if limit else 0,
    }


def log_endpoint_event(endpoint: str, user_id: Optional[int] = None, result: str = "success", details: Optional[dict] = None):
    """Log endpoint execution to app.log"""
    logger.info(f"{endpoint} | user={user_id or 'anonymous'} | {result} | {json.dumps(details or {}, default=str)}")


def reject_null_updates(model, updates: dict) -> None:
    """
    Partial updates may clear optional columns but never required ones.

    Raises:
        HTTPException 400 naming the first NOT NULL column sent as null
    """
    columns = model.__table__.columns
    for key, value in updates.items():
        if value is None and key in columns and not columns[key].nullable:
            raise HTTPException(status_code=400, detail=f"{to_camel(key)} 不能为空")
