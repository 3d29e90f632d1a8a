"""
Unit Tests for Redis Utilities

Tests the shared connection pool used by the rate limit store.
All Redis operations are mocked for fast, isolated testing.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from memora.db import redis as redis_module


class TestRedisConnectionPool:
    """Test Redis connection pool management."""

    @pytest.mark.asyncio
    async def test_get_redis_pool_is_cached(self, monkeypatch) -> None:
        """get_redis_pool should build the pool once from REDIS_URL."""
        monkeypatch.setattr(redis_module, "_redis_pool", None)
        pool = MagicMock()

        with patch.object(
            redis_module.redis.ConnectionPool, "from_url", return_value=pool
        ) as from_url:
            first = await redis_module.get_redis_pool()
            second = await redis_module.get_redis_pool()

        assert first is pool
        assert second is pool
        from_url.assert_called_once()
        assert from_url.call_args.kwargs["decode_responses"] is True
        assert from_url.call_args.kwargs["max_connections"] == redis_module.MAX_CONNECTIONS

    @pytest.mark.asyncio
    async def test_get_redis_returns_client(self) -> None:
        """get_redis should return a Redis client."""
        with patch("memora.db.redis.get_redis_pool") as mock_pool:
            mock_pool.return_value = MagicMock()

            client = await redis_module.get_redis()

            assert client is not None

    @pytest.mark.asyncio
    async def test_close_redis_pool(self) -> None:
        """close_redis_pool should disconnect the pool."""
        mock_pool = MagicMock()
        mock_pool.disconnect = AsyncMock()
        redis_module._redis_pool = mock_pool

        await redis_module.close_redis_pool()

        mock_pool.disconnect.assert_called_once()
        assert redis_module._redis_pool is None

    @pytest.mark.asyncio
    async def test_close_without_pool_is_noop(self, monkeypatch) -> None:
        """Closing before any connection was made does nothing."""
        monkeypatch.setattr(redis_module, "_redis_pool", None)

        await redis_module.close_redis_pool()

        assert redis_module._redis_pool is None


class TestRedisConfig:
    """Test values read from the YAML config."""

    def test_rate_limit_ttl_covers_a_day(self) -> None:
        """Bucket TTL must outlive the daily counter."""
        assert redis_module.DEFAULT_RATE_LIMIT_TTL > 86400
