"""Middleware module for campadmin backend."""

from campadmin.middleware.rate_limit import PathRateLimit, RateLimiter, RateLimitMiddleware
from campadmin.middleware.rate_limit_cleanup import rate_limit_sweep_loop
from campadmin.middleware.request_timeout import RequestTimeoutMiddleware

__all__ = [
    "PathRateLimit",
    "RateLimiter",
    "RateLimitMiddleware",
    "RequestTimeoutMiddleware",
    "rate_limit_sweep_loop",
]
