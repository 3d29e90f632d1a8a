"""
Storage connections.

Usage:
    from memora.db import get_redis, close_redis_pool
"""

from memora.db.redis import close_redis_pool, get_redis, get_redis_pool

__all__ = ["get_redis", "get_redis_pool", "close_redis_pool"]
