"""
Rate Limiter Abstract Base Class

Per-key order counters used as a soft anti-abuse control on checkout.
A limiter answers one question: may this key place another order now?

Implementations:
    - InMemoryRateLimiter: process-local, lost on restart
    - RedisRateLimiter: shared between instances through Redis
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class RateLimitDecision:
    """
    Outcome of a single ``hit``.

    Attributes:
        allowed: Whether the request may proceed
        count: Requests counted in the current window, this one included when allowed
        retry_after_seconds: Seconds until the window resets
    """
    allowed: bool
    count: int
    retry_after_seconds: int = 0


class BaseRateLimiter(ABC):
    """Fixed-window counter keyed by an arbitrary string (the phone number)."""

    def __init__(self, max_requests: int, window_seconds: int):
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend name."""
        pass

    @abstractmethod
    async def hit(self, key: str) -> RateLimitDecision:
        """
        Count one request for ``key``.

        Rejected requests are not counted, so a blocked caller does not
        extend its own lockout.
        """
        pass

    @abstractmethod
    async def reset(self, key: str = None) -> None:
        """Forget one key, or every key when ``key`` is None."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check backend connectivity."""
        pass
