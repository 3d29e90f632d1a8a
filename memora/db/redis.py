"""
Redis Connection Utilities

Provides the shared Redis connection pool used for counters that must be
visible to every process (rate-limit day counters).

Usage:
    from memora.db.redis import get_redis

    redis = await get_redis()
    await redis.setex("key", 60, "value")
"""

from typing import Any, Optional

import redis.asyncio as redis

from memora.config import settings, yaml_config


# Get Redis configuration from yaml config
redis_config: dict[str, Any] = yaml_config.get("redis", {})
DEFAULT_RATE_LIMIT_TTL: int = redis_config.get("rate_limit_ttl", 90000)
MAX_CONNECTIONS: int = redis_config.get("max_connections", 10)


# Connection pool (lazily initialized)
_redis_pool: Optional[redis.ConnectionPool] = None


async def get_redis_pool() -> redis.ConnectionPool:
    """Get or create the Redis connection pool."""
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = redis.ConnectionPool.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            max_connections=MAX_CONNECTIONS,
        )
    return _redis_pool


async def get_redis() -> redis.Redis:
    """Get a Redis connection from the pool."""
    pool = await get_redis_pool()
    return redis.Redis(connection_pool=pool)


async def close_redis_pool() -> None:
    """Close the Redis connection pool."""
    global _redis_pool
    if _redis_pool is not None:
        await _redis_pool.disconnect()
        _redis_pool = None
