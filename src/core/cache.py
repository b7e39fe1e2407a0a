#!/usr/bin/env python3
"""
In-memory caches.

A generic TTL cache plus the two request-spanning caches the app needs:
completion-size estimates per article type and prefetched page text.
Instances are created by the container and injected where needed.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """Cached value and the time it stops being valid."""
    value: Any
    expires_at: float

    def is_expired(self, now: Optional[float] = None) -> bool:
        return (now if now is not None else time.time()) > self.expires_at


class TTLCache:
    """
    Thread-safe in-memory cache with per-entry TTL and LRU eviction.

    Entries are kept in access order: reads move a key to the end, so the
    front of the mapping is always the least recently used entry. Expired
    entries are dropped on read and during periodic sweeps.
    """

    def __init__(self,
                 default_ttl: int = 900,
                 max_entries: int = 1000,
                 cleanup_interval: int = 300):
        """
        Args:
            default_ttl: Default TTL in seconds
            max_entries: Maximum number of entries before LRU eviction
            cleanup_interval: Seconds between sweeps for expired entries
        """
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self.cleanup_interval = cleanup_interval

        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.RLock()
        self._last_cleanup = time.time()
        self._stats = {'hits': 0, 'misses': 0, 'sets': 0, 'evictions': 0}

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.is_expired():
                del self._entries[key]
                logger.debug(f"Cache key expired: {key}")
                entry = None

            if entry is None:
                self._stats['misses'] += 1
                return default

            self._entries.move_to_end(key)
            self._stats['hits'] += 1
            return entry.value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        expires_at = time.time() + (self.default_ttl if ttl is None else ttl)
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=expires_at)
            self._entries.move_to_end(key)
            self._stats['sets'] += 1

            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
                self._stats['evictions'] += 1

            if time.time() - self._last_cleanup >= self.cleanup_interval:
                self.cleanup()

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            logger.debug(f"Cleared {count} cache entries")

    def cleanup(self) -> int:
        """Drop expired entries and return how many were removed."""
        with self._lock:
            now = time.time()
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
            self._last_cleanup = now
            if expired:
                logger.debug(f"Swept {len(expired)} expired cache entries")
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            lookups = self._stats['hits'] + self._stats['misses']
            return {
                **self._stats,
                'entries': len(self._entries),
                'hit_rate': (self._stats['hits'] / lookups * 100) if lookups else 0,
                'max_entries': self.max_entries,
                'default_ttl': self.default_ttl,
            }


class UsageEstimateCache:
    """
    Remembers how many completion tokens each article type tends to use.

    Only a hint for the first token budget of a request; losing it is harmless.
    """

    def __init__(self, ttl_seconds: int = 86400, max_entries: int = 64):
        self._cache = TTLCache(default_ttl=ttl_seconds, max_entries=max_entries)

    def get_estimate(self, article_type: str) -> Optional[int]:
        return self._cache.get(article_type)

    def record_usage(self, article_type: str, completion_tokens: Optional[int]) -> None:
        """Keep the largest completion seen for the article type."""
        if not completion_tokens or completion_tokens <= 0:
            return
        current = self._cache.get(article_type) or 0
        if completion_tokens > current:
            self._cache.set(article_type, int(completion_tokens))
            logger.debug(f"Usage estimate for {article_type} now {completion_tokens} tokens")

    def clear(self) -> None:
        self._cache.clear()


PREFETCH_KINDS = ('blog', 'transcript')


class PrefetchCache:
    """Short-lived store for fetched blog text and video transcripts."""

    def __init__(self, ttl_seconds: int = 300, max_entries: int = 200):
        self._cache = TTLCache(default_ttl=ttl_seconds, max_entries=max_entries)

    @staticmethod
    def build_key(kind: str, url: str) -> str:
        return f"{kind}:{url.strip()}"

    def get(self, kind: str, url: Optional[str]) -> Optional[str]:
        if not url:
            return None
        return self._cache.get(self.build_key(kind, url))

    def set(self, kind: str, url: Optional[str], data: Optional[str]) -> None:
        if not url or not data:
            return
        self._cache.set(self.build_key(kind, url), data)

    def clear_entry(self, kind: str, url: Optional[str]) -> None:
        if not url:
            return
        self._cache.delete(self.build_key(kind, url))
