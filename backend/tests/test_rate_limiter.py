import time

from spreadmarket.limiter import RateLimiter


def test_allows_up_to_max_requests_then_denies():
    limiter = RateLimiter("memory://")

    results = [limiter.check("user-1", max_requests=5, window_ms=60_000) for _ in range(6)]

    assert [r.allowed for r in results] == [True] * 5 + [False]
    assert [r.remaining_requests for r in results[:5]] == [4, 3, 2, 1, 0]
    assert results[5].remaining_requests == 0


def test_reset_time_is_in_the_future_in_milliseconds():
    limiter = RateLimiter("memory://")
    before = int(time.time() * 1000)

    result = limiter.check("user-1", max_requests=5, window_ms=60_000)

    assert before < result.reset_time <= before + 61_000


def test_identifiers_are_independent():
    limiter = RateLimiter("memory://")
    for _ in range(2):
        limiter.check("user-1", max_requests=2, window_ms=60_000)

    assert limiter.check("user-1", max_requests=2, window_ms=60_000).allowed is False
    assert limiter.check("user-2", max_requests=2, window_ms=60_000).allowed is True


def test_window_expires():
    limiter = RateLimiter("memory://")
    limiter.check("user-1", max_requests=1, window_ms=1000)
    assert limiter.check("user-1", max_requests=1, window_ms=1000).allowed is False

    time.sleep(1.2)

    assert limiter.check("user-1", max_requests=1, window_ms=1000).allowed is True


def test_reset_clears_counters():
    limiter = RateLimiter("memory://")
    limiter.check("user-1", max_requests=1, window_ms=60_000)

    limiter.reset()

    assert limiter.check("user-1", max_requests=1, window_ms=60_000).allowed is True
