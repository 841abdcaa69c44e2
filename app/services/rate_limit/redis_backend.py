"""
Redis Rate Limiter

Shares order counters between service instances. Each key is an INCR counter
whose TTL is set when the window opens, so Redis expires it on its own.
"""

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from app.services.rate_limit.base import BaseRateLimiter, RateLimitDecision

logger = logging.getLogger(__name__)

RATE_LIMIT_PREFIX = "ratelimit:orders:"


class RedisRateLimiter(BaseRateLimiter):
    """Fixed-window limiter backed by Redis counters."""

    def __init__(self, redis_url: str, max_requests: int, window_seconds: int):
        super().__init__(max_requests, window_seconds)
        self._redis = aioredis.from_url(redis_url, decode_responses=True)
        logger.info(
            f"RedisRateLimiter initialized "
            f"({max_requests} requests / {window_seconds}s)"
        )

    @property
    def backend_name(self) -> str:
        return "redis"

    def _key(self, key: str) -> str:
        return f"{RATE_LIMIT_PREFIX}{key}"

    async def hit(self, key: str) -> RateLimitDecision:
        redis_key = self._key(key)

        current = await self._redis.get(redis_key)
        if current is not None and int(current) >= self.max_requests:
            ttl = await self._redis.ttl(redis_key)
            return RateLimitDecision(
                allowed=False,
                count=int(current),
                retry_after_seconds=max(ttl, 0),
            )

        pipe = self._redis.pipeline()
        pipe.incr(redis_key)
        # NX keeps the TTL of an already open window
        pipe.expire(redis_key, self.window_seconds, nx=True)
        count, _ = await pipe.execute()

        if count > self.max_requests:
            # Lost a race with a concurrent request for the same key
            await self._redis.decr(redis_key)
            ttl = await self._redis.ttl(redis_key)
            return RateLimitDecision(
                allowed=False,
                count=self.max_requests,
                retry_after_seconds=max(ttl, 0),
            )

        return RateLimitDecision(allowed=True, count=count)

    async def reset(self, key: str = None) -> None:
        if key is not None:
            await self._redis.delete(self._key(key))
            return
        async for redis_key in self._redis.scan_iter(match=f"{RATE_LIMIT_PREFIX}*"):
            await self._redis.delete(redis_key)

    async def health_check(self) -> bool:
        try:
            return await self._redis.ping()
        except RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return False

    async def close(self) -> None:
        await self._redis.aclose()
