from __future__ import annotations

import enum
import logging
import threading
import time
from collections.abc import Awaitable, Callable
from typing import Any, NamedTuple, TypeVar

from .types import ApiResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheClass(str, enum.Enum):
    UPLOAD_URL = "upload_url"
    UPLOAD_PART_URL = "upload_part_url"
    LIST_BUCKETS = "list_buckets"
    LIST_FILE_NAMES = "list_file_names"
    LIST_FILE_VERSIONS = "list_file_versions"
    LIST_KEYS = "list_keys"
    LIST_PARTS = "list_parts"
    LIST_UNFINISHED = "list_unfinished"


class CacheKey(NamedTuple):
    cache_class: CacheClass
    identity: Any = None


class ResponseCache:
    """TTL cache for endpoint results, invalidated per ``CacheClass``.

    Each client owns its own instance. Expired entries are dropped lazily on
    lookup.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[CacheKey, tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: CacheKey) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return value

    def set(self, key: CacheKey, value: Any, ttl: float) -> None:
        if ttl <= 0:
            return
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)

    async def get_or_create(
        self,
        key: CacheKey,
        factory: Callable[[], Awaitable[ApiResult[T]]],
        ttl: float,
    ) -> ApiResult[T]:
        """Return the cached result for ``key`` or create and cache it.

        Failed results are returned but never stored. A ``ttl`` of zero or
        less bypasses the cache entirely.
        """
        if ttl <= 0:
            return await factory()
        cached = self.get(key)
        if cached is not None:
            logger.debug("cache hit for %s", key.cache_class.value)
            return cached
        result = await factory()
        if result.is_success:
            self.set(key, result, ttl)
        return result

    def remove(self, key: CacheKey) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def invalidate(self, *classes: CacheClass) -> None:
        targets = set(classes)
        with self._lock:
            stale = [key for key in self._entries if key.cache_class in targets]
            for key in stale:
                del self._entries[key]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def keys(self) -> list[CacheKey]:
        with self._lock:
            return list(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, CacheKey) and self.get(key) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["CacheClass", "CacheKey", "ResponseCache"]
