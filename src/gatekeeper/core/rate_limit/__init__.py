"""Rate limiting with a sliding window over the coordination store.

Provides per-user and per-IP rate limiting with a general policy and a
stricter policy for authentication endpoints.
"""

from gatekeeper.core.rate_limit.backend import (
    RateLimitDecision,
    RateLimitOutcome,
    RateLimitPolicies,
    RateLimitPolicy,
    SlidingWindowRateLimiter,
)
from gatekeeper.core.rate_limit.middleware import GateRecord, RateLimitMiddleware
from gatekeeper.core.rate_limit.routes import router as rate_limit_router


__all__ = [
    "GateRecord",
    "RateLimitDecision",
    "RateLimitMiddleware",
    "RateLimitOutcome",
    "RateLimitPolicies",
    "RateLimitPolicy",
    "SlidingWindowRateLimiter",
    "rate_limit_router",
]
