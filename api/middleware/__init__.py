"""API middleware for rate limiting."""

from api.middleware.rate_limiter import RateLimiter, agent_rate_limiter, analysis_rate_limiter

__all__ = ["RateLimiter", "agent_rate_limiter", "analysis_rate_limiter"]
