# =============================================================================
# lib/rate_limiter.py - In-Memory Token Bucket Rate Limiter
# =============================================================================
# Per-process token buckets keyed by "action:identity".
#
# - A bucket starts full (capacity tokens).
# - Tokens refill continuously at capacity / window_seconds per second,
#   capped at capacity.
# - Each allowed request consumes one token.
# - State is not shared between processes and is lost on restart.
#
# Usage:
#   from lib.rate_limiter import rate_limiter, RATE_LIMITS
#   result = rate_limiter.hit_named("otp_request", client_ip)
#   if not result.allowed:
#       ...  # respond 429 with result.retry_after
# =============================================================================

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

# Buckets idle longer than this are evicted once the store grows past
# CLEANUP_THRESHOLD entries.
IDLE_TTL_SECONDS = 300
CLEANUP_THRESHOLD = 100


@dataclass(frozen=True)
class RateLimit:
    """A named limit: `capacity` requests per `window_seconds`."""
    capacity: int
    window_seconds: float


# Limits used by the API, looked up by action name.
RATE_LIMITS: dict[str, RateLimit] = {
    "otp_request": RateLimit(5, 3600),
    "otp_verify": RateLimit(10, 3600),
    "otp_resend": RateLimit(3, 600),
    "email_validate": RateLimit(20, 60),
    "captcha": RateLimit(10, 60),
    "password_change": RateLimit(3, 300),
    "profile_update": RateLimit(10, 60),
    "report_create": RateLimit(5, 3600),
    "certificate_verify": RateLimit(30, 60),
    "newsletter_subscribe": RateLimit(5, 60),
    "gallery_create": RateLimit(10, 3600),
    "general": RateLimit(100, 900),
}


@dataclass
class RateLimitResult:
    """Outcome of a single hit against a bucket."""
    allowed: bool
    remaining: int
    retry_after: int  # seconds until at least one token is available


@dataclass
class _Bucket:
    tokens: float
    last_refill: float


class TokenBucketRateLimiter:
    """
    Thread-safe token bucket store.

    Args:
        clock: Monotonic time source in seconds (injectable for tests)
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._buckets: dict[str, _Bucket] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._buckets)

    def hit(self, key: str, capacity: int, window_seconds: float) -> RateLimitResult:
        """
        Try to consume one token from the bucket at `key`.

        Args:
            key: Bucket identity, conventionally "action:identity"
            capacity: Maximum tokens (burst size)
            window_seconds: Time to refill an empty bucket completely

        Returns:
            RateLimitResult with allowed flag, whole tokens left, and
            seconds to wait when refused
        """
        if capacity <= 0 or window_seconds <= 0:
            raise ValueError("capacity and window_seconds must be positive")

        refill_rate = capacity / window_seconds

        with self._lock:
            now = self._clock()
            self._evict_idle(now)

            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = _Bucket(tokens=float(capacity), last_refill=now)
                self._buckets[key] = bucket
            else:
                elapsed = max(0.0, now - bucket.last_refill)
                bucket.tokens = min(float(capacity), bucket.tokens + elapsed * refill_rate)
                bucket.last_refill = now

            if bucket.tokens >= 1:
                bucket.tokens -= 1
                return RateLimitResult(
                    allowed=True,
                    remaining=int(bucket.tokens),
                    retry_after=0,
                )

            wait = (1 - bucket.tokens) / refill_rate
            return RateLimitResult(
                allowed=False,
                remaining=0,
                retry_after=max(1, math.ceil(wait)),
            )

    def hit_named(self, action: str, identity: str) -> RateLimitResult:
        """Hit the bucket for a preset in RATE_LIMITS."""
        limit = RATE_LIMITS[action]
        return self.hit(f"{action}:{identity}", limit.capacity, limit.window_seconds)

    def reset(self, key: str | None = None) -> None:
        """Forget one bucket, or all of them."""
        with self._lock:
            if key is None:
                self._buckets.clear()
            else:
                self._buckets.pop(key, None)

    def _evict_idle(self, now: float) -> None:
        # Caller holds the lock.
        if len(self._buckets) <= CLEANUP_THRESHOLD:
            return
        stale = [k for k, b in self._buckets.items() if now - b.last_refill > IDLE_TTL_SECONDS]
        for k in stale:
            del self._buckets[k]
        if stale:
            logger.debug(f"Evicted {len(stale)} idle rate limit buckets")


# Process-wide limiter used by the API
rate_limiter = TokenBucketRateLimiter()
