"""
In-memory sliding window rate limiter for the analysis endpoints.

Both pipelines call paid upstream services, so each gets its own per-client
budget. Limits come from settings; state is per process.
"""

import time
from typing import Dict, List

import structlog
from fastapi import HTTPException, Request, status

from libs.common.settings import get_settings

logger = structlog.get_logger(__name__)


class RateLimiter:
    """Sliding window rate limiter keyed by user, falling back to client IP."""

    def __init__(self, scope: str, max_requests: int = 10, window_seconds: int = 60, enabled: bool = True):
        """
        Args:
            scope: Name used in logs, e.g. "analysis"
            max_requests: Maximum requests allowed in window
            window_seconds: Time window in seconds
            enabled: Whether rate limiting is enabled
        """
        self.scope = scope
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.enabled = enabled
        self._history: Dict[str, List[float]] = {}
        self._last_sweep = time.time()

    def _get_client_id(self, request: Request) -> str:
        user = getattr(request.state, "user", None)
        if user is not None:
            return f"user:{user.uid}"

        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            client_ip = forwarded_for.split(",")[0].strip()
        else:
            client_ip = request.client.host if request.client else "unknown"
        return f"ip:{client_ip}"

    def reset(self) -> None:
        self._history.clear()

    def _sweep(self, cutoff_time: float) -> None:
        """Drop clients with no requests inside the window."""
        idle = [client_id for client_id, history in self._history.items() if not history or history[-1] <= cutoff_time]
        for client_id in idle:
            del self._history[client_id]

    async def check_rate_limit(self, request: Request) -> None:
        """
        Record the request or reject it.

        Raises:
            HTTPException: 429 if the client exhausted its budget
        """
        if not self.enabled:
            return

        client_id = self._get_client_id(request)
        current_time = time.time()
        cutoff_time = current_time - self.window_seconds
        if current_time - self._last_sweep >= self.window_seconds:
            self._sweep(cutoff_time)
            self._last_sweep = current_time

        history = [ts for ts in self._history.get(client_id, []) if ts > cutoff_time]
        self._history[client_id] = history

        if len(history) >= self.max_requests:
            retry_after = int(self.window_seconds - (current_time - history[0])) + 1
            logger.warning(
                "Rate limit exceeded",
                scope=self.scope,
                client_id=client_id,
                current_count=len(history),
                max_requests=self.max_requests,
                window_seconds=self.window_seconds,
            )
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={
                    "error": "Too many requests",
                    "retryAfterSeconds": retry_after,
                },
                headers={"Retry-After": str(retry_after)},
            )

        history.append(current_time)


_settings = get_settings()

analysis_rate_limiter = RateLimiter(
    "analysis",
    max_requests=_settings.analysis_rate_limit_per_minute,
    enabled=_settings.rate_limit_enabled,
)
agent_rate_limiter = RateLimiter(
    "multi_agent",
    max_requests=_settings.agent_rate_limit_per_minute,
    enabled=_settings.rate_limit_enabled,
)
