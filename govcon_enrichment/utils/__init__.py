"""Shared utilities: rate limiting and logging configuration."""

from .rate_limiter import RateLimiter


__all__ = ["RateLimiter"]
