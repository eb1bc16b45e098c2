"""
Rate limiting package for the Gateway.

Holds the fixed-window limiter and the request-side wrapper that enforce a
per-address request budget across the public catalog surface.
"""

from .fixed_window import FixedWindowRateLimiter, RateLimitMiddleware

__all__ = ["FixedWindowRateLimiter", "RateLimitMiddleware"]
