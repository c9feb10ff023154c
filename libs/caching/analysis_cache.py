"""
Read-through cache for the latest case analysis per (user, case).

Entries expire with the staleness window. Expiry only bounds storage: callers
still judge freshness from the entry's own creation timestamp.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

import redis.asyncio as redis
import structlog

from libs.caching.redis_client import get_redis_client

logger = structlog.get_logger(__name__)


@dataclass
class CacheStats:
    """Cache statistics for monitoring."""

    hits: int = 0
    misses: int = 0
    errors: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total


class AnalysisCache:
    """
    Redis-backed cache of serialized analysis entries.

    Usage:
        cache = AnalysisCache(ttl_seconds=24 * 3600)
        entry = await cache.get_latest(case_id, user_id)
        if entry is None:
            entry = await load_from_database(...)
            await cache.set_latest(case_id, user_id, entry)
    """

    def __init__(
        self,
        ttl_seconds: int,
        key_prefix: str = "analysis:latest",
        redis_client: Optional[redis.Redis] = None,
    ):
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix
        self._redis_client = redis_client
        self._stats = CacheStats()

    def _key(self, case_id: str, user_id: str) -> str:
        return f"{self.key_prefix}:{user_id}:{case_id}"

    async def _client(self) -> Optional[redis.Redis]:
        if self._redis_client is None:
            self._redis_client = await get_redis_client()
        return self._redis_client

    async def get_latest(self, case_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        """Return the cached payload, or None on miss or when Redis is unavailable."""
        client = await self._client()
        if client is None:
            return None

        try:
            raw = await client.get(self._key(case_id, user_id))
        except redis.RedisError as e:
            self._stats.errors += 1
            logger.warning("Analysis cache read failed", case_id=case_id, error=str(e))
            return None

        if raw is None:
            self._stats.misses += 1
            return None

        self._stats.hits += 1
        return json.loads(raw)

    async def set_latest(self, case_id: str, user_id: str, payload: Dict[str, Any]) -> None:
        client = await self._client()
        if client is None:
            return

        try:
            await client.set(self._key(case_id, user_id), json.dumps(payload, default=str), ex=self.ttl_seconds)
        except redis.RedisError as e:
            self._stats.errors += 1
            logger.warning("Analysis cache write failed", case_id=case_id, error=str(e))

    async def invalidate(self, case_id: str, user_id: str) -> None:
        client = await self._client()
        if client is None:
            return
        try:
            await client.delete(self._key(case_id, user_id))
        except redis.RedisError as e:
            self._stats.errors += 1
            logger.warning("Analysis cache invalidation failed", case_id=case_id, error=str(e))

    def get_stats(self) -> CacheStats:
        return self._stats
