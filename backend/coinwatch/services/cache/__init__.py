"""
Cache module for CoinWatch.

Expiring key/value cache over memory or Redis storage.
"""

from coinwatch.services.cache.storage import (
    CacheStorage,
    MemoryStorage,
    RedisStorage,
    init_storage,
)
from coinwatch.services.cache.expiring import (
    CacheEntry,
    ExpiringCache,
    get_cache,
    init_cache,
)

__all__ = [
    "CacheStorage",
    "MemoryStorage",
    "RedisStorage",
    "init_storage",
    "CacheEntry",
    "ExpiringCache",
    "get_cache",
    "init_cache",
]
