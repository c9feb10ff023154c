"""
Caching utilities for the case analysis service.

- Redis client management
- Latest-analysis read-through cache
"""

from libs.caching.analysis_cache import AnalysisCache
from libs.caching.redis_client import get_redis_client

__all__ = ["AnalysisCache", "get_redis_client"]
