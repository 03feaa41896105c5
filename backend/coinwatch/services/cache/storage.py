"""
String key/value storage backends for the expiring cache.

Two backends:
- MemoryStorage: in-process dict with a byte budget (localStorage-like quota)
- RedisStorage: Redis, persisted across restarts

Backends never raise on write; they report success as a bool.
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import redis

from coinwatch.core.config import settings

logger = logging.getLogger(__name__)


class CacheStorage(ABC):
    """Raw string store the expiring cache is layered on."""

    @abstractmethod
    def raw_set(self, key: str, value: str, ttl: Optional[float] = None) -> bool:
        """Store a value. Returns False if the write was rejected."""
        pass

    @abstractmethod
    def raw_get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def raw_remove(self, key: str) -> None:
        pass

    @abstractmethod
    def keys(self, prefix: str = "") -> List[str]:
        """All stored keys starting with `prefix`."""
        pass


class MemoryStorage(CacheStorage):
    """
    In-memory storage with a size limit.

    Size is counted as len(key) + len(value) per entry, like browser
    localStorage quotas.
    """

    def __init__(self, capacity_bytes: Optional[int] = None):
        self._data: Dict[str, str] = {}
        self._capacity = capacity_bytes
        self._used = 0

    @property
    def used_bytes(self) -> int:
        return self._used

    def raw_set(self, key: str, value: str, ttl: Optional[float] = None) -> bool:
        old = self._data.get(key)
        freed = len(key) + len(old) if old is not None else 0
        needed = len(key) + len(value)

        if self._capacity is not None and self._used - freed + needed > self._capacity:
            logger.debug(f"Memory storage quota exceeded writing {key} ({needed} bytes)")
            return False

        self._data[key] = value
        self._used += needed - freed
        return True

    def raw_get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def raw_remove(self, key: str) -> None:
        old = self._data.pop(key, None)
        if old is not None:
            self._used -= len(key) + len(old)

    def keys(self, prefix: str = "") -> List[str]:
        return [k for k in self._data if k.startswith(prefix)]


class RedisStorage(CacheStorage):
    """
    Redis-backed storage.

    Keys also get a native Redis expiry, so entries disappear even when no
    sweep runs. Redis errors are logged and reported as misses/failed writes.
    """

    def __init__(self, client: redis.Redis):
        self._redis = client

    def raw_set(self, key: str, value: str, ttl: Optional[float] = None) -> bool:
        try:
            ex = max(1, math.ceil(ttl)) if ttl is not None else None
            self._redis.set(key, value, ex=ex)
            return True
        except redis.RedisError as e:
            logger.debug(f"Redis set failed for {key}: {e}")
            return False

    def raw_get(self, key: str) -> Optional[str]:
        try:
            return self._redis.get(key)
        except redis.RedisError as e:
            logger.debug(f"Redis get failed for {key}: {e}")
            return None

    def raw_remove(self, key: str) -> None:
        try:
            self._redis.delete(key)
        except redis.RedisError as e:
            logger.debug(f"Redis delete failed for {key}: {e}")

    def keys(self, prefix: str = "") -> List[str]:
        try:
            return list(self._redis.scan_iter(match=f"{prefix}*"))
        except redis.RedisError as e:
            logger.debug(f"Redis scan failed: {e}")
            return []


def init_storage(backend: Optional[str] = None) -> CacheStorage:
    """
    Build the configured storage backend.
    Falls back to memory when Redis is unreachable.
    """
    backend = (backend or settings.cache_backend).lower()

    if backend == "redis":
        try:
            client = redis.Redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            # Test connection
            client.ping()
            logger.info(f"Redis connected: {settings.redis_url}")
            return RedisStorage(client)
        except (redis.RedisError, ValueError) as e:
            logger.warning(f"Redis connection failed: {e}. Using in-memory fallback.")

    return MemoryStorage(capacity_bytes=settings.cache_capacity_bytes)
