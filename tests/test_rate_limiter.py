# =============================================================================
# tests/test_rate_limiter.py - Token Bucket Tests
# =============================================================================
# Run with: pytest tests/test_rate_limiter.py -v
# =============================================================================

import pytest

from lib.rate_limiter import (
    CLEANUP_THRESHOLD,
    IDLE_TTL_SECONDS,
    RATE_LIMITS,
    TokenBucketRateLimiter,
)


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return TokenBucketRateLimiter(clock=clock)


class TestTokenBucket:

    def test_new_bucket_allows_burst_up_to_capacity(self, limiter):
        results = [limiter.hit("otp:1.2.3.4", capacity=3, window_seconds=60) for _ in range(3)]

        assert all(r.allowed for r in results)
        assert [r.remaining for r in results] == [2, 1, 0]

    def test_refuses_when_empty(self, limiter):
        for _ in range(3):
            limiter.hit("k", 3, 60)

        result = limiter.hit("k", 3, 60)

        assert not result.allowed
        assert result.remaining == 0
        # one token takes 20s at 3 per minute
        assert result.retry_after == 20

    def test_refills_continuously(self, limiter, clock):
        for _ in range(3):
            limiter.hit("k", 3, 60)

        clock.advance(20)

        assert limiter.hit("k", 3, 60).allowed
        assert not limiter.hit("k", 3, 60).allowed

    def test_refill_is_capped_at_capacity(self, limiter, clock):
        limiter.hit("k", 3, 60)
        clock.advance(3600)

        results = [limiter.hit("k", 3, 60) for _ in range(4)]

        assert [r.allowed for r in results] == [True, True, True, False]

    def test_retry_after_is_at_least_one_second(self, limiter, clock):
        limiter.hit("k", 100, 1)
        for _ in range(99):
            limiter.hit("k", 100, 1)

        result = limiter.hit("k", 100, 1)

        assert not result.allowed
        assert result.retry_after == 1

    def test_keys_are_independent(self, limiter):
        limiter.hit("a", 1, 60)

        assert not limiter.hit("a", 1, 60).allowed
        assert limiter.hit("b", 1, 60).allowed

    def test_invalid_limits_raise(self, limiter):
        with pytest.raises(ValueError):
            limiter.hit("k", 0, 60)
        with pytest.raises(ValueError):
            limiter.hit("k", 5, 0)

    def test_reset_single_key(self, limiter):
        limiter.hit("a", 1, 60)
        limiter.hit("b", 1, 60)

        limiter.reset("a")

        assert limiter.hit("a", 1, 60).allowed
        assert not limiter.hit("b", 1, 60).allowed

    def test_reset_all(self, limiter):
        limiter.hit("a", 1, 60)
        limiter.reset()
        assert len(limiter) == 0


class TestNamedLimits:

    def test_hit_named_uses_preset(self, limiter):
        preset = RATE_LIMITS["otp_resend"]

        results = [limiter.hit_named("otp_resend", "a@b.com") for _ in range(preset.capacity + 1)]

        assert [r.allowed for r in results].count(True) == preset.capacity
        assert not results[-1].allowed

    def test_unknown_action_raises(self, limiter):
        with pytest.raises(KeyError):
            limiter.hit_named("not-an-action", "x")


class TestEviction:

    def test_idle_buckets_evicted_past_threshold(self, limiter, clock):
        for i in range(CLEANUP_THRESHOLD + 1):
            limiter.hit(f"idle:{i}", 5, 60)

        clock.advance(IDLE_TTL_SECONDS + 1)
        limiter.hit("fresh", 5, 60)

        assert len(limiter) == 1

    def test_no_eviction_below_threshold(self, limiter, clock):
        for i in range(10):
            limiter.hit(f"idle:{i}", 5, 60)

        clock.advance(IDLE_TTL_SECONDS + 1)
        limiter.hit("fresh", 5, 60)

        assert len(limiter) == 11
