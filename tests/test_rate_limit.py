"""In-memory fixed-window limiter, driven by a fake clock."""

import asyncio

from app.services.rate_limit import InMemoryRateLimiter, RedisRateLimiter, get_rate_limiter, reset_rate_limiter


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _hits(limiter: InMemoryRateLimiter, key: str, count: int) -> list[bool]:
    async def run() -> list[bool]:
        return [(await limiter.hit(key)).allowed for _ in range(count)]

    return asyncio.run(run())


def test_tenth_request_allowed_eleventh_rejected() -> None:
    limiter = InMemoryRateLimiter(max_requests=10, window_seconds=3600, clock=FakeClock())

    results = _hits(limiter, "+919876543210", 11)

    assert results[:10] == [True] * 10
    assert results[10] is False


def test_rejected_requests_are_not_counted() -> None:
    clock = FakeClock()
    limiter = InMemoryRateLimiter(max_requests=2, window_seconds=60, clock=clock)

    _hits(limiter, "+919876543210", 5)
    decision = asyncio.run(limiter.hit("+919876543210"))

    assert decision.allowed is False
    assert decision.count == 2
    assert decision.retry_after_seconds == 60


def test_window_resets_after_expiry() -> None:
    clock = FakeClock()
    limiter = InMemoryRateLimiter(max_requests=10, window_seconds=3600, clock=clock)
    _hits(limiter, "+919876543210", 10)

    clock.advance(3599)
    assert _hits(limiter, "+919876543210", 1) == [False]

    clock.advance(2)
    assert _hits(limiter, "+919876543210", 1) == [True]


def test_keys_are_counted_independently() -> None:
    limiter = InMemoryRateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())

    assert _hits(limiter, "+919876543210", 2) == [True, False]
    assert _hits(limiter, "+919812345678", 1) == [True]


def test_expired_windows_are_swept(monkeypatch) -> None:
    clock = FakeClock()
    limiter = InMemoryRateLimiter(max_requests=5, window_seconds=10, clock=clock)
    monkeypatch.setattr(InMemoryRateLimiter, "SWEEP_THRESHOLD", 3)

    for phone in ("+910000000001", "+910000000002", "+910000000003"):
        _hits(limiter, phone, 1)
    clock.advance(11)
    _hits(limiter, "+910000000004", 1)

    assert list(limiter._windows) == ["+910000000004"]


def test_reset_clears_one_key_or_all() -> None:
    limiter = InMemoryRateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
    _hits(limiter, "a", 1)
    _hits(limiter, "b", 1)

    asyncio.run(limiter.reset("a"))
    assert _hits(limiter, "a", 1) == [True]
    assert _hits(limiter, "b", 1) == [False]

    asyncio.run(limiter.reset())
    assert _hits(limiter, "b", 1) == [True]


def test_factory_uses_configured_backend(monkeypatch) -> None:
    from app.core.config import RateLimitBackend, Settings

    reset_rate_limiter()
    assert isinstance(get_rate_limiter(), InMemoryRateLimiter)

    settings = Settings(_env_file=None, rate_limit_backend=RateLimitBackend.REDIS, redis_url="redis://localhost:6390/0")
    monkeypatch.setattr("app.services.rate_limit.get_settings", lambda: settings)
    reset_rate_limiter()
    try:
        limiter = get_rate_limiter()
        assert isinstance(limiter, RedisRateLimiter)
        assert limiter.max_requests == 10
    finally:
        reset_rate_limiter()
