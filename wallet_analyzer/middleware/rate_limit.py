"""
In-memory fixed-window rate limiting.

Buckets are keyed by ``scope:identifier`` (e.g. ``analyze:0xabc...``) and live in
process memory, so limits are per worker.
"""

import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from ..config import settings


class RateLimitExceeded(Exception):
    """Rate limit has been exceeded."""
    def __init__(self, decision: "RateLimitDecision"):
        self.decision = decision
        super().__init__(f"Rate limit exceeded: {decision.limit} requests per window")


@dataclass
class _Bucket:
    count: int
    expires_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after: Optional[int] = None

    def headers(self) -> Dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(max(0, self.remaining)),
            "X-RateLimit-Reset": str(math.ceil(self.reset_at)),
        }
        if self.retry_after is not None:
            headers["Retry-After"] = str(self.retry_after)
        return headers


class InMemoryRateLimiter:
    """Fixed-window counter per scope and identifier."""

    def __init__(
        self,
        limit: Optional[int] = None,
        window_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.limit = limit or settings.rate_limit_max_requests
        self.window_seconds = window_seconds or settings.rate_limit_window_seconds
        self._clock = clock
        self._buckets: Dict[str, _Bucket] = {}
        self._next_sweep = 0.0

    def _prune(self, now: float) -> None:
        """Drop expired buckets, at most once per window."""
        if now < self._next_sweep:
            return
        expired = [key for key, bucket in self._buckets.items() if bucket.expires_at <= now]
        for key in expired:
            del self._buckets[key]
        self._next_sweep = now + self.window_seconds

    def check(self, scope: str, identifier: str) -> RateLimitDecision:
        """Count one request and report whether it is within the limit."""
        key = f"{scope}:{identifier}"
        now = self._clock()

        bucket = self._buckets.get(key)
        if bucket is None or bucket.expires_at <= now:
            self._prune(now)
            bucket = _Bucket(count=0, expires_at=now + self.window_seconds)
            self._buckets[key] = bucket
        bucket.count += 1

        remaining = max(0, self.limit - bucket.count)
        if bucket.count > self.limit:
            retry_after = max(1, math.ceil(bucket.expires_at - now))
            return RateLimitDecision(False, self.limit, 0, bucket.expires_at, retry_after)
        return RateLimitDecision(True, self.limit, remaining, bucket.expires_at)

    def enforce(self, scope: str, identifier: str) -> RateLimitDecision:
        decision = self.check(scope, identifier)
        if not decision.allowed:
            raise RateLimitExceeded(decision)
        return decision

    def reset(self) -> None:
        self._buckets.clear()
        self._next_sweep = 0.0


# Singleton instance
_rate_limiter: Optional[InMemoryRateLimiter] = None


def get_rate_limiter() -> InMemoryRateLimiter:
    """Get the singleton rate limiter instance."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = InMemoryRateLimiter()
    return _rate_limiter
