# ᛗᛁᛗᛁᚱ • Mimir's Well - Memory of Remote Lookups
"""
In-memory TTL cache for AWS lookups.

Every list/describe call made during a scan is memoized here so that the
same (account, service, operation, region, identifiers) lookup is never
sent to AWS twice within the TTL. Values are always complete results:
fetchers drain every page before calling ``set``.

Typical usage:
    cache = TTLCache()
    key = cache_key(account_id, 'sqs', 'ListQueues', region)
    queues = cache.get_or_fetch(key, lambda: list_all_queues(region))
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 2 * 60 * 60


def cache_key(account_id: str, service: str, operation: str, region: str, *identifiers: Any) -> str:
    """
    Build the cache key for a remote lookup.

    Examples:
        cache_key('111122223333', 'sqs', 'ListQueues', 'us-east-1')
            -> '111122223333-sqs-ListQueues-us-east-1'
        cache_key('111122223333', 'lambda', 'GetPolicy', 'eu-west-1', 'fn')
            -> '111122223333-lambda-GetPolicy-eu-west-1-fn'
    """
    parts = [account_id, service, operation, region]
    parts.extend(str(i) for i in identifiers)
    return "-".join(parts)


@dataclass
class CacheEntry:
    key: str
    value: Any
    expires_at: float


class TTLCache:
    """Thread-safe key/value store whose entries expire after a TTL."""

    def __init__(self, default_ttl: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            default_ttl: Seconds an entry lives when ``set`` is not given a ttl
            clock: Monotonic time source (injectable for tests)
        """
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Tuple[Any, bool]:
        """Return ``(value, True)`` for a live entry, ``(None, False)`` otherwise."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None, False
            if entry.expires_at <= self._clock():
                del self._entries[key]
                self.misses += 1
                return None, False
            self.hits += 1
            return entry.value, True

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._entries[key] = CacheEntry(key=key, value=value, expires_at=self._clock() + ttl)

    def get_or_fetch(self, key: str, fetch: Callable[[], Any], ttl: Optional[float] = None) -> Any:
        """
        Return the cached value for ``key`` or call ``fetch`` and cache its result.

        Exceptions raised by ``fetch`` propagate and nothing is cached.
        Two threads missing the same key at once may both fetch; the last
        write wins and both results are complete.
        """
        value, found = self.get(key)
        if found:
            return value
        logger.debug("Cache miss: %s", key)
        value = fetch()
        self.set(key, value, ttl)
        return value

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def stats(self) -> Dict[str, Any]:
        """Hit/miss counters for the end-of-scan summary."""
        total = self.hits + self.misses
        return {
            'entries': len(self),
            'hits': self.hits,
            'misses': self.misses,
            'cache_hit_rate': (self.hits / total) if total else 0.0,
        }
