"""
Expiring key/value cache.

Each value is wrapped in an envelope {data, stored_at, expires_at} and
stored as JSON under a namespaced key. Expiry is checked on every read, and
sweep() purges whatever has expired since.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from coinwatch.core.config import settings
from coinwatch.services.base import CacheWriteError
from coinwatch.services.cache.storage import CacheStorage, init_storage

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Stored value with its lifetime (epoch seconds)."""

    data: T
    stored_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class ExpiringCache:
    """
    Generic key -> value store with per-entry TTL.

    Usage:
        cache = ExpiringCache(MemoryStorage())
        cache.set("bundle:BTCUSDT:1h", payload, ttl=90)
        cache.get("bundle:BTCUSDT:1h")  # None once 90s have passed
    """

    def __init__(
        self,
        storage: CacheStorage,
        prefix: str = "coinwatch:",
        clock: Callable[[], float] = time.time,
    ):
        self._storage = storage
        self._prefix = prefix
        self._clock = clock

    @property
    def storage(self) -> CacheStorage:
        return self._storage

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _serialize(self, key: str, entry: CacheEntry) -> str:
        try:
            return json.dumps(
                {
                    "data": entry.data,
                    "stored_at": entry.stored_at,
                    "expires_at": entry.expires_at,
                }
            )
        except (TypeError, ValueError) as e:
            raise CacheWriteError("ExpiringCache", f"cannot serialize {key}: {e}") from e

    @staticmethod
    def _deserialize(raw: str) -> CacheEntry:
        payload = json.loads(raw)
        return CacheEntry(
            data=payload["data"],
            stored_at=float(payload["stored_at"]),
            expires_at=float(payload["expires_at"]),
        )

    # ============ Public API ============

    def set(self, key: str, value: Any, ttl: float) -> bool:
        """
        Store a JSON-serializable value for `ttl` seconds.

        Returns False (and logs) when the value cannot be serialized or the
        storage rejects the write. Never raises.
        """
        now = self._clock()
        entry = CacheEntry(data=value, stored_at=now, expires_at=now + ttl)

        try:
            payload = self._serialize(key, entry)
            if not self._storage.raw_set(self._key(key), payload, ttl):
                raise CacheWriteError("ExpiringCache", f"storage rejected {key}")
        except CacheWriteError as e:
            logger.warning(f"Cache write skipped: {e}")
            return False

        return True

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Envelope for `key`, or None if absent, corrupt or expired."""
        full_key = self._key(key)
        raw = self._storage.raw_get(full_key)
        if raw is None:
            return None

        try:
            entry = self._deserialize(raw)
        except (ValueError, KeyError, TypeError) as e:
            logger.debug(f"Dropping corrupt cache entry {key}: {e}")
            self._storage.raw_remove(full_key)
            return None

        if entry.is_expired(self._clock()):
            self._storage.raw_remove(full_key)
            return None

        return entry

    def get(self, key: str) -> Optional[Any]:
        """Cached value, or None if absent or expired."""
        entry = self.get_entry(key)
        return entry.data if entry is not None else None

    def remove(self, key: str) -> None:
        self._storage.raw_remove(self._key(key))

    def sweep(self) -> int:
        """Delete every expired (or unreadable) entry. Returns the count purged."""
        now = self._clock()
        purged = 0

        for full_key in self._storage.keys(self._prefix):
            raw = self._storage.raw_get(full_key)
            if raw is None:
                continue
            try:
                expired = self._deserialize(raw).is_expired(now)
            except (ValueError, KeyError, TypeError):
                expired = True

            if expired:
                self._storage.raw_remove(full_key)
                purged += 1

        if purged:
            logger.info(f"Cache sweep purged {purged} entries")
        return purged


# Singleton instance
_cache: Optional[ExpiringCache] = None


def init_cache(storage: Optional[CacheStorage] = None) -> ExpiringCache:
    """
    Initialize the shared cache.
    Called on application startup.
    """
    global _cache
    _cache = ExpiringCache(storage or init_storage(), prefix=settings.cache_prefix)
    return _cache


def get_cache() -> ExpiringCache:
    """Get the shared cache, creating it on first use."""
    global _cache
    if _cache is None:
        _cache = init_cache()
    return _cache
