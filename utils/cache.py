"""Lightweight in-memory TTL cache for CropKeeper.

Used for per-farm weather reports. Entries expire after a fixed
time-to-live; the cache holds at most ``maxsize`` entries and drops the
least recently written one when full.
"""

import threading
import time
from collections import OrderedDict
from typing import Any, Callable


class TTLCache:
    """Thread-safe in-memory cache with time-to-live (TTL) expiry.

    Usage::

        cache = TTLCache(maxsize=64, ttl_seconds=600)
        cache.set(("weather", 1), report)
        report = cache.get(("weather", 1))  # None once expired
        report = cache.get_or_set(("weather", 2), lambda: build(2))
    """

    def __init__(self, maxsize: int = 128, ttl_seconds: float = 300.0) -> None:
        """Initialise the cache.

        Args:
            maxsize: Maximum number of entries to store (default 128).
            ttl_seconds: Seconds before a cached entry expires (default 300).
        """
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        self._maxsize = maxsize
        self._ttl = ttl_seconds
        # key -> (value, expires_at); insertion order is write order
        self._entries: "OrderedDict[Any, tuple[Any, float]]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def _lookup(self, key: Any, now: float) -> tuple[bool, Any]:
        # Caller holds the lock.
        entry = self._entries.get(key)
        if entry is None:
            return False, None
        value, expires_at = entry
        if now > expires_at:
            del self._entries[key]
            return False, None
        return True, value

    def _store(self, key: Any, value: Any, now: float) -> None:
        # Caller holds the lock.
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self._maxsize:
            self._entries.popitem(last=False)
        self._entries[key] = (value, now + self._ttl)

    def get(self, key: Any) -> Any | None:
        """Return cached value for *key*, or ``None`` if absent or expired."""
        with self._lock:
            found, value = self._lookup(key, time.monotonic())
            if found:
                self._hits += 1
                return value
            self._misses += 1
            return None

    def set(self, key: Any, value: Any) -> None:
        """Store *value* under *key* with the configured TTL."""
        with self._lock:
            self._store(key, value, time.monotonic())

    def get_or_set(self, key: Any, factory: Callable[[], Any]) -> Any:
        """Return the cached value, computing and storing it on a miss.

        The factory runs outside the lock; two concurrent misses may both
        compute the value and the last writer wins.

        Args:
            key: Cache key (must be hashable).
            factory: Zero-argument callable producing the value.
        """
        with self._lock:
            found, value = self._lookup(key, time.monotonic())
            if found:
                self._hits += 1
                return value
            self._misses += 1
        value = factory()
        with self._lock:
            self._store(key, value, time.monotonic())
        return value

    def delete(self, key: Any) -> None:
        """Remove a single entry (no-op if not present)."""
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        """Remove all entries and reset the hit/miss counters."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> dict[str, int]:
        """Return ``hits``, ``misses`` and live ``size`` (expired entries purged)."""
        with self._lock:
            now = time.monotonic()
            for k in [k for k, (_, exp) in self._entries.items() if now > exp]:
                del self._entries[k]
            return {
                "hits": self._hits,
                "misses": self._misses,
                "size": len(self._entries),
            }
