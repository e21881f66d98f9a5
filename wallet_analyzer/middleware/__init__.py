from .logging_middleware import RequestLoggingMiddleware
from .rate_limit import (
    InMemoryRateLimiter,
    RateLimitDecision,
    RateLimitExceeded,
    get_rate_limiter,
)

__all__ = [
    "InMemoryRateLimiter",
    "RateLimitDecision",
    "RateLimitExceeded",
    "RequestLoggingMiddleware",
    "get_rate_limiter",
]
