"""Rate limiting package for the BFF."""

from .token_bucket import RateLimitMiddleware, TokenBucketRateLimiter

__all__ = ["RateLimitMiddleware", "TokenBucketRateLimiter"]
