"""
In-Memory Rate Limiter

Counters live in a dict inside the worker process. They reset whenever the
process restarts and are not shared between instances, so the limit is
advisory when the service is scaled out.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.services.rate_limit.base import BaseRateLimiter, RateLimitDecision

logger = logging.getLogger(__name__)


@dataclass
class _Window:
    count: int
    reset_at: float


class InMemoryRateLimiter(BaseRateLimiter):
    """
    Fixed-window limiter held in process memory.

    The first request for a key opens a window of ``window_seconds``; up to
    ``max_requests`` are accepted inside it.

    Example:
        >>> limiter = InMemoryRateLimiter(max_requests=10, window_seconds=3600)
        >>> decision = await limiter.hit("+919876543210")
        >>> decision.allowed
        True
    """

    # Expired windows are swept once the map grows past this many keys
    SWEEP_THRESHOLD = 10_000

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(max_requests, window_seconds)
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

        logger.info(
            f"InMemoryRateLimiter initialized "
            f"({max_requests} requests / {window_seconds}s)"
        )

    @property
    def backend_name(self) -> str:
        return "memory"

    def _sweep(self, now: float) -> None:
        expired = [key for key, window in self._windows.items() if now > window.reset_at]
        for key in expired:
            del self._windows[key]

    async def hit(self, key: str) -> RateLimitDecision:
        now = self._clock()
        with self._lock:
            window = self._windows.get(key)

            if window is None or now > window.reset_at:
                if len(self._windows) >= self.SWEEP_THRESHOLD:
                    self._sweep(now)
                self._windows[key] = _Window(count=1, reset_at=now + self.window_seconds)
                return RateLimitDecision(allowed=True, count=1)

            retry_after = max(0, int(window.reset_at - now))
            if window.count >= self.max_requests:
                return RateLimitDecision(
                    allowed=False,
                    count=window.count,
                    retry_after_seconds=retry_after,
                )

            window.count += 1
            return RateLimitDecision(allowed=True, count=window.count)

    async def reset(self, key: str = None) -> None:
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)

    async def health_check(self) -> bool:
        return True
