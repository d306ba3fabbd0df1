"""
Caching layer for parts search
Short-TTL memoisation of search results and item lookups
"""
import json
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from config.config import Config
from parts_search.models import CacheEntry

config = Config


def build_cache_key(namespace: str, payload: Any) -> Optional[str]:
    """
    Canonical cache key for a filter bag (or any JSON-able payload)

    Keys are sorted and None values dropped, so {"a": 1, "b": None} and
    {"b": None, "a": 1} and {"a": 1} share one key.

    Args:
        namespace: Key prefix, e.g. "search" or "item"
        payload: Dict / pydantic-dumped data

    Returns:
        "namespace:{...}" or None when payload cannot be serialised
    """
    try:
        body = json.dumps(
            _drop_none(payload),
            sort_keys=True,
            separators=(",", ":"),
        )
    except (TypeError, ValueError):
        return None
    return f"{namespace}:{body}"


def _drop_none(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _drop_none(item) for key, item in value.items() if item is not None}
    if isinstance(value, (list, tuple)):
        return [_drop_none(item) for item in value]
    return value


class SearchCache:
    """
    TTL cache for orchestrator results

    Expired entries are purged lazily on access. Create one per orchestrator
    (or share one explicitly) and close() it when done.
    """

    def __init__(self, ttl: int = None, clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize cache

        Args:
            ttl: Time to live in seconds (default: Config.SEARCH_CACHE_TTL)
            clock: Returns "now" (default: datetime.now)
        """
        self.ttl = ttl if ttl is not None else config.SEARCH_CACHE_TTL
        self.clock = clock or datetime.now
        self._cache: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._closed = False

    def get(self, key: Any) -> Optional[Any]:
        """
        Get cached value

        Args:
            key: Cache key; anything other than a non-empty str is a miss

        Returns:
            Cached value, or None if not found/expired
        """
        if not isinstance(key, str) or not key:
            self._misses += 1
            return None

        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._misses += 1
                return None

            # Check if expired
            if entry.is_expired(self.clock()):
                del self._cache[key]
                self._misses += 1
                return None

            self._hits += 1
            return entry.value

    def set(self, key: Any, value: Any):
        """
        Cache a value (replaces any previous entry)

        Args:
            key: Cache key; non-str keys are ignored
            value: Value to cache
        """
        if not isinstance(key, str) or not key or self._closed:
            return

        entry = CacheEntry(
            key=key,
            value=value,
            expires_at=self.clock() + timedelta(seconds=self.ttl),
        )
        with self._lock:
            self._cache[key] = entry

    def clear(self) -> int:
        """Clear all cache entries; returns how many were removed"""
        with self._lock:
            removed = len(self._cache)
            self._cache.clear()
        return removed

    def clear_by_substring(self, fragment: str) -> int:
        """
        Remove every entry whose key contains fragment

        Args:
            fragment: Substring to look for (e.g. an item id)

        Returns:
            Number of entries removed
        """
        if not fragment:
            return 0
        with self._lock:
            doomed = [key for key in self._cache if fragment in key]
            for key in doomed:
                del self._cache[key]
        return len(doomed)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            entry = self._cache.get(key)
            return entry is not None and not entry.is_expired(self.clock())

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def stats(self) -> Dict[str, int]:
        """Cache statistics"""
        with self._lock:
            size = len(self._cache)
        return {
            "hits": self._hits,
            "misses": self._misses,
            "size": size,
            "ttl": self.ttl,
        }

    def close(self):
        """Drop all entries; later set() calls are ignored"""
        self.clear()
        self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
