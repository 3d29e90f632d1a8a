"""Services package for study scheduling, analytics, and rate limiting."""

from memora.services.rate_limit import (
    RateLimiter,
    RateLimitPolicy,
    RateLimitResult,
    get_rate_limiter,
    policy_for,
)

__all__ = [
    "RateLimiter",
    "RateLimitPolicy",
    "RateLimitResult",
    "get_rate_limiter",
    "policy_for",
]
