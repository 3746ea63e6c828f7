"""HTTP middleware."""

from mdserver.middleware.rate_limit import (
    FixedWindowRateLimiter,
    RateLimitDecision,
    RateLimitMiddleware,
)

__all__ = ["FixedWindowRateLimiter", "RateLimitDecision", "RateLimitMiddleware"]
