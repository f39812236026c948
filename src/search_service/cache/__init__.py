"""Redis-backed cache layer for query results."""

from search_service.cache.client import CacheLayer, CacheStats
from search_service.cache.keys import SEARCH_PREFIX, prefix_pattern, search_key

__all__ = [
    "SEARCH_PREFIX",
    "CacheLayer",
    "CacheStats",
    "prefix_pattern",
    "search_key",
]
