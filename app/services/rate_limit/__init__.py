"""
Rate Limiter Factory

Returns the in-memory or Redis limiter based on RATE_LIMIT_BACKEND.

Usage:
    from app.services.rate_limit import get_rate_limiter

    decision = await get_rate_limiter().hit(phone)
    if not decision.allowed:
        ...
"""

import logging
from functools import lru_cache

from app.core.config import RateLimitBackend, get_settings
from app.services.rate_limit.base import BaseRateLimiter, RateLimitDecision
from app.services.rate_limit.memory import InMemoryRateLimiter
from app.services.rate_limit.redis_backend import RedisRateLimiter

logger = logging.getLogger(__name__)


@lru_cache()
def get_rate_limiter() -> BaseRateLimiter:
    """Get the process-wide order rate limiter."""
    settings = get_settings()

    if settings.rate_limit_backend == RateLimitBackend.REDIS:
        logger.info("Rate Limiter: Using RedisRateLimiter")
        return RedisRateLimiter(
            redis_url=settings.redis_url,
            max_requests=settings.rate_limit_max_orders,
            window_seconds=settings.rate_limit_window_seconds,
        )

    logger.info("Rate Limiter: Using InMemoryRateLimiter")
    return InMemoryRateLimiter(
        max_requests=settings.rate_limit_max_orders,
        window_seconds=settings.rate_limit_window_seconds,
    )


def reset_rate_limiter() -> None:
    """Drop the cached limiter (and with it every in-memory counter)."""
    get_rate_limiter.cache_clear()


__all__ = [
    "get_rate_limiter",
    "reset_rate_limiter",
    "BaseRateLimiter",
    "RateLimitDecision",
    "InMemoryRateLimiter",
    "RedisRateLimiter",
]
