"""
Per-User Rate Limiting

Limits expensive, AI-triggered operations per user with two counters:
- a moving 60-second window, kept by the `limits` package
  (MovingWindowRateLimiter over a `limits` storage)
- a calendar-day counter that resets at UTC midnight

Both are keyed "{route_key}:{user_id}". Backends, chosen by
RATE_LIMIT_BACKEND:
- memory: limits MemoryStorage + InMemoryDayCounter (single process)
- redis: limits async Redis storage + RedisDayCounter over the shared
  redis.asyncio pool (every process sees the same counters)

Limits per category come from settings (RATE_LIMIT_AI_PER_MINUTE /
RATE_LIMIT_AI_PER_DAY) with per-category overrides under `rate_limits` in
config/default.yaml.

Usage:
    from memora.enums import RateLimitType
    from memora.services.rate_limit import get_rate_limiter, policy_for

    limiter = get_rate_limiter()
    result = await limiter.consume(user_id, policy_for(RateLimitType.AI_MNEMONIC))
    if not result.allowed:
        ...  # respond 429 with result.headers and Retry-After

    # Or raise RateLimitError when denied
    await limiter.enforce(user_id, policy_for(RateLimitType.AI_MINDMAP))
"""

import logging
import math
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

from limits import RateLimitItem, RateLimitItemPerMinute
from limits.aio.storage import MemoryStorage, Storage
from limits.aio.strategies import MovingWindowRateLimiter
from limits.storage import storage_from_string

from memora.config import settings, yaml_config
from memora.db.redis import DEFAULT_RATE_LIMIT_TTL, get_redis
from memora.enums.api import RateLimitType
from memora.errors import RateLimitError
from memora.services.locks import KeyedLock

logger = logging.getLogger(__name__)


def _next_utc_midnight(now: datetime) -> datetime:
    day = now.astimezone(timezone.utc).date() + timedelta(days=1)
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


# ===========================================
# Policy & result
# ===========================================


@dataclass(frozen=True)
class RateLimitPolicy:
    """Limits for one route key."""

    route_key: str
    max_per_minute: int
    max_per_day: int

    @property
    def minute_item(self) -> RateLimitItem:
        return RateLimitItemPerMinute(self.max_per_minute)


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of one consume() call."""

    allowed: bool
    retry_after_sec: int
    headers: dict[str, str] = field(default_factory=dict)


def policy_for(limit_type: RateLimitType) -> RateLimitPolicy:
    """
    Resolve the policy for a rate limit category.

    Args:
        limit_type: RateLimitType enum value (its value is the route key)

    Returns:
        RateLimitPolicy with settings defaults and YAML overrides applied
    """
    overrides = yaml_config.get("rate_limits", {}).get(limit_type.value, {})
    return RateLimitPolicy(
        route_key=limit_type.value,
        max_per_minute=int(overrides.get("max_per_minute", settings.RATE_LIMIT_AI_PER_MINUTE)),
        max_per_day=int(overrides.get("max_per_day", settings.RATE_LIMIT_AI_PER_DAY)),
    )


# ===========================================
# Day counters
# ===========================================


class DayCounter(Protocol):
    """Calls per key and UTC day ("YYYY-MM-DD")."""

    async def get(self, key: str, day_key: str) -> int:
        ...

    async def incr(self, key: str, day_key: str) -> int:
        ...


class InMemoryDayCounter:
    """
    Process-local day counter.

    Only the current day is kept: the first access on a new day drops every
    count from earlier days.
    """

    def __init__(self) -> None:
        self._day_key = ""
        self._counts: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._counts)

    def _roll(self, day_key: str) -> None:
        if day_key != self._day_key:
            self._day_key = day_key
            self._counts.clear()

    async def get(self, key: str, day_key: str) -> int:
        self._roll(day_key)
        return self._counts.get(key, 0)

    async def incr(self, key: str, day_key: str) -> int:
        self._roll(day_key)
        self._counts[key] = self._counts.get(key, 0) + 1
        return self._counts[key]


class RedisDayCounter:
    """
    Redis-backed day counter shared by every process.

    Counts live under "{prefix}:{key}:{day_key}" and expire after the
    configured TTL (a day plus slack), so past days cost nothing.
    """

    def __init__(self, prefix: Optional[str] = None, ttl: int = DEFAULT_RATE_LIMIT_TTL) -> None:
        self.prefix = prefix or settings.RATE_LIMIT_KEY_PREFIX
        self.ttl = ttl

    def _make_key(self, key: str, day_key: str) -> str:
        return f"{self.prefix}:{key}:{day_key}"

    async def get(self, key: str, day_key: str) -> int:
        r = await get_redis()
        value = await r.get(self._make_key(key, day_key))
        return int(value) if value else 0

    async def incr(self, key: str, day_key: str) -> int:
        r = await get_redis()
        redis_key = self._make_key(key, day_key)
        count = await r.incr(redis_key)
        if count == 1:
            await r.expire(redis_key, self.ttl)
        return count


# ===========================================
# Limiter
# ===========================================


class RateLimiter:
    """
    Moving-minute plus calendar-day limiter.

    A denied call does not count toward either limit. Checks and hits for
    one key are serialized within the process; across processes sharing
    Redis a burst can overshoot a limit by the number of processes.
    """

    def __init__(
        self,
        minute_storage: Optional[Storage] = None,
        day_counter: Optional[DayCounter] = None,
    ) -> None:
        self.minute_storage = minute_storage or MemoryStorage()
        self.minute_window = MovingWindowRateLimiter(self.minute_storage)
        self.day_counter = day_counter or InMemoryDayCounter()
        self._locks = KeyedLock()

    @staticmethod
    def _headers(
        policy: RateLimitPolicy,
        minute_remaining: int,
        minute_reset_sec: int,
        day_count: int,
        day_reset_sec: int,
    ) -> dict[str, str]:
        return {
            "X-RateLimit-Limit-Minute": str(policy.max_per_minute),
            "X-RateLimit-Remaining-Minute": str(max(0, minute_remaining)),
            "X-RateLimit-Reset-Minute": str(minute_reset_sec),
            "X-RateLimit-Limit-Day": str(policy.max_per_day),
            "X-RateLimit-Remaining-Day": str(max(0, policy.max_per_day - day_count)),
            "X-RateLimit-Reset-Day": str(day_reset_sec),
        }

    async def consume(self, user_id: str, policy: RateLimitPolicy) -> RateLimitResult:
        """
        Count one call against the user's limits if both allow it.

        Args:
            user_id: Caller identity
            policy: Limits for the route

        Returns:
            RateLimitResult. When denied, retry_after_sec is derived from
            the oldest call in the minute window (minute limit) or the time
            to the next UTC midnight (day limit), and is at least 1.
        """
        now_ts = time.time()
        now = datetime.fromtimestamp(now_ts, timezone.utc)
        day_key = now.date().isoformat()
        day_reset_sec = int(_next_utc_midnight(now).timestamp())
        key = f"{policy.route_key}:{user_id}"
        item = policy.minute_item

        async with self._locks.hold(key):
            day_count = await self.day_counter.get(key, day_key)
            minute_exceeded = not await self.minute_window.test(item, key)
            day_exceeded = day_count >= policy.max_per_day

            allowed = not (minute_exceeded or day_exceeded)
            if allowed:
                await self.minute_window.hit(item, key)
                day_count = await self.day_counter.incr(key, day_key)

            window = await self.minute_window.get_window_stats(item, key)

        headers = self._headers(
            policy, window.remaining, math.ceil(window.reset_time), day_count, day_reset_sec
        )
        if allowed:
            return RateLimitResult(allowed=True, retry_after_sec=0, headers=headers)

        if minute_exceeded:
            retry_after = max(1, math.ceil(window.reset_time - now_ts))
        else:
            retry_after = max(1, day_reset_sec - int(now_ts))

        logger.warning(
            f"Rate limit exceeded for {key} "
            f"({'minute' if minute_exceeded else 'day'}), retry in {retry_after}s"
        )
        return RateLimitResult(allowed=False, retry_after_sec=retry_after, headers=headers)

    async def enforce(self, user_id: str, policy: RateLimitPolicy) -> RateLimitResult:
        """
        Consume one call or raise.

        Raises:
            RateLimitError: Either limit is exhausted; details carry
                retry_after and the rate limit headers.
        """
        result = await self.consume(user_id, policy)
        if not result.allowed:
            raise RateLimitError(
                "Too many requests. Please try again later.",
                details={"retry_after": result.retry_after_sec, "headers": result.headers},
            )
        return result


_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Get the process-wide limiter for the configured backend."""
    global _rate_limiter
    if _rate_limiter is None:
        if settings.RATE_LIMIT_BACKEND == "redis":
            _rate_limiter = RateLimiter(
                minute_storage=storage_from_string(f"async+{settings.REDIS_URL}"),
                day_counter=RedisDayCounter(),
            )
        else:
            _rate_limiter = RateLimiter()
        logger.info(f"Rate limiting backend: {settings.RATE_LIMIT_BACKEND}")
    return _rate_limiter
