"""
Tests for the latest-analysis cache.

Tests verify:
- Miss, set and hit round trip with stats
- Entries are keyed per user and case
- TTL follows the staleness window
- Invalidation removes the entry
- A missing Redis degrades to a permanent miss
"""

from unittest.mock import AsyncMock, patch

import pytest
import redis.asyncio as redis

from libs.caching.analysis_cache import AnalysisCache

PAYLOAD = {
    "analysisId": "a-1",
    "createdAt": "2026-01-05T10:00:00+00:00",
    "analysis": {"meritScore": 72, "confidence": 0.75, "outcomePrediction": "favorable"},
}


@pytest.fixture
def cache(redis_client):
    return AnalysisCache(ttl_seconds=3600, redis_client=redis_client)


@pytest.mark.asyncio
async def test_miss_then_hit(cache):
    assert await cache.get_latest("case-1", "user-1") is None

    await cache.set_latest("case-1", "user-1", PAYLOAD)

    assert await cache.get_latest("case-1", "user-1") == PAYLOAD
    stats = cache.get_stats()
    assert stats.hits == 1
    assert stats.misses == 1
    assert stats.hit_rate == 0.5


@pytest.mark.asyncio
async def test_entries_are_scoped_to_user(cache):
    await cache.set_latest("case-1", "user-1", PAYLOAD)

    assert await cache.get_latest("case-1", "user-2") is None


@pytest.mark.asyncio
async def test_entry_expires_with_ttl(cache, redis_client):
    await cache.set_latest("case-1", "user-1", PAYLOAD)

    ttl = await redis_client.ttl("analysis:latest:user-1:case-1")

    assert 0 < ttl <= 3600


@pytest.mark.asyncio
async def test_invalidate_removes_entry(cache):
    await cache.set_latest("case-1", "user-1", PAYLOAD)

    await cache.invalidate("case-1", "user-1")

    assert await cache.get_latest("case-1", "user-1") is None


@pytest.mark.asyncio
async def test_redis_errors_count_as_miss(redis_client):
    cache = AnalysisCache(ttl_seconds=60, redis_client=redis_client)
    redis_client.get = AsyncMock(side_effect=redis.ConnectionError("down"))

    assert await cache.get_latest("case-1", "user-1") is None
    assert cache.get_stats().errors == 1


@pytest.mark.asyncio
async def test_unavailable_redis_is_a_no_op():
    cache = AnalysisCache(ttl_seconds=60)

    with patch("libs.caching.analysis_cache.get_redis_client", AsyncMock(return_value=None)):
        await cache.set_latest("case-1", "user-1", PAYLOAD)
        await cache.invalidate("case-1", "user-1")
        assert await cache.get_latest("case-1", "user-1") is None
