"""
Response Cache

Generic time-boxed key -> value store with per-entry expiry.

An entry is a miss once its expiry instant is at or before the current time,
and reading a stale entry deletes it. There is no eviction beyond expiry unless
`max_entries` is given, in which case inserting past the cap first purges
expired entries and then evicts the entry closest to expiry.

Usage:
    cache = ResponseCache(default_ttl=5.0)
    cache.set("injective:markets", markets)
    cache.get("injective:markets")        # -> markets, until 5s have passed
"""

import threading
import time
from typing import Any, Callable, Dict, NamedTuple, Optional

from core.logging import get_logger


class CacheEntry(NamedTuple):
    value: Any
    expires_at: float


class ResponseCache:
    """
    In-memory TTL cache.

    Attributes:
        default_ttl: TTL in seconds used when set() is called without one
        max_entries: Optional cap on stored entries (None = expiry-only)

    Notes:
        - Stored values must not be None; get() returns None for a miss
        - The clock is injectable for deterministic tests
        - A lock guards the store so it stays consistent across threads
    """

    def __init__(
        self,
        default_ttl: float = 10.0,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if default_ttl <= 0:
            raise ValueError(f"default_ttl must be positive, got {default_ttl}")
        if max_entries is not None and max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")

        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self._clock = clock
        self._store: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self.logger = get_logger(__name__)

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._store[key]
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """
        Store a value under key for ttl seconds (instance default when None).
        """
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            now = self._clock()
            self._store[key] = CacheEntry(value=value, expires_at=now + ttl)
            if self.max_entries is not None and len(self._store) > self.max_entries:
                self._evict(now)

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def purge_expired(self) -> int:
        """
        Drop every expired entry.

        Returns:
            Number of entries removed
        """
        with self._lock:
            return self._purge(self._clock())

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    # Callers hold self._lock
    def _purge(self, now: float) -> int:
        expired = [k for k, entry in self._store.items() if entry.expires_at <= now]
        for k in expired:
            del self._store[k]
        return len(expired)

    def _evict(self, now: float) -> None:
        self._purge(now)
        while len(self._store) > self.max_entries:
            victim = min(self._store, key=lambda k: self._store[k].expires_at)
            del self._store[victim]
            self.logger.debug(f"Cache full ({self.max_entries}); evicted '{victim}'")
