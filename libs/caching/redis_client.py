"""
Redis client manager for the analysis cache.

Provides:
- Async Redis client with connection pooling
- Singleton pattern for resource efficiency
- Graceful degradation when Redis is not configured or unreachable
"""

from typing import Optional

import redis.asyncio as redis
import structlog

from libs.common.settings import get_settings

logger = structlog.get_logger(__name__)

# Global Redis client instance (singleton)
_redis_client: Optional[redis.Redis] = None
_connection_failed = False  # Circuit breaker for repeated failures


def _redacted(url: str) -> str:
    return url.split("@")[-1] if "@" in url else url.split("//")[-1]


async def get_redis_client(use_fake: bool | None = None) -> Optional[redis.Redis]:
    """
    Get or create async Redis client with connection pooling.

    Args:
        use_fake: If True, use fakeredis for testing. If None, auto-detect from settings.

    Returns:
        Redis client instance or None if Redis is unavailable
    """
    global _redis_client, _connection_failed

    settings = get_settings()
    if use_fake is None:
        use_fake = settings.app_env == "test"

    if use_fake:
        from fakeredis import aioredis as fakeredis

        if _redis_client is None:
            _redis_client = fakeredis.FakeRedis(decode_responses=True)
            logger.info("Using fakeredis for testing")
        return _redis_client

    # If previous connection attempt failed, don't retry immediately
    if _connection_failed:
        return None

    if _redis_client is not None:
        try:
            await _redis_client.ping()
            return _redis_client
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning("Existing Redis connection failed, reconnecting", error=str(e))
            _redis_client = None

    redis_url = settings.redis_url
    if not redis_url:
        logger.warning(
            "Redis not configured, analysis cache disabled",
            hint="Set CASEPATH_REDIS_URL to enable caching",
        )
        _connection_failed = True
        return None

    try:
        _redis_client = redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=20,
            socket_timeout=5,
            socket_connect_timeout=5,
            retry_on_timeout=True,
        )
        await _redis_client.ping()
        logger.info("Redis client initialized", url=_redacted(redis_url), max_connections=20)
        return _redis_client

    except (redis.ConnectionError, redis.TimeoutError) as e:
        logger.error(
            "Redis connection failed",
            error=str(e),
            redis_url=_redacted(redis_url),
            hint="Check CASEPATH_REDIS_URL and ensure Redis server is running",
        )
        _redis_client = None
        _connection_failed = True
        return None


async def reset_redis_client():
    """Reset Redis client (for testing or after connection failures)."""
    global _redis_client, _connection_failed

    if _redis_client is not None:
        await _redis_client.aclose()

    _redis_client = None
    _connection_failed = False
    logger.info("Redis client reset")


async def health_check() -> bool:
    """Return True when Redis answers a ping."""
    redis_client = await get_redis_client()
    if redis_client is None:
        return False
    try:
        return await redis_client.ping() is True
    except (redis.ConnectionError, redis.TimeoutError) as e:
        logger.error("Redis health check failed", error=str(e))
        return False
