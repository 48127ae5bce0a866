"""Tiered in-memory cache with graceful degradation.

Every key can carry a long-lived ``<key>:backup`` slot. Expired entries keep
their bytes in memory so callers can still read them in degraded mode.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')

BACKUP_SUFFIX = ':backup'


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A stored value with its write time and TTL."""
    data: T
    stored_at: float
    ttl_seconds: float

    def age(self, now: float) -> float:
        return now - self.stored_at

    def is_expired(self, now: float) -> bool:
        return self.age(now) > self.ttl_seconds


@dataclass(frozen=True)
class FallbackRead(Generic[T]):
    """Result of a degraded read: the value and whether it came from the backup slot."""
    value: T
    is_stale: bool


class CacheKey:
    """Utility class for generating consistent cache keys."""

    @staticmethod
    def request(url: str) -> str:
        """Key for a raw upstream response body."""
        return f"request:{url}"

    @staticmethod
    def section_list() -> str:
        """Key for the discovered section list."""
        return "hig:sections:all"

    @staticmethod
    def resource(uri: str) -> str:
        """Key for a rendered resource document."""
        return f"resource:{uri}"

    @staticmethod
    def resource_list() -> str:
        return "resources:list"

    @staticmethod
    def backup(key: str) -> str:
        """Key of the degradation slot for ``key``."""
        return f"{key}{BACKUP_SUFFIX}"


class TieredCache:
    """In-memory TTL cache with explicit staleness queries and backup slots.

    Cache operations never raise: a miss is ``None``.
    """

    def __init__(self,
                 default_ttl: float = 3600,
                 backup_ttl_multiplier: float = 24,
                 max_entries: Optional[int] = None,
                 clock: Callable[[], float] = time.time):
        """Initialize cache.

        Args:
            default_ttl: TTL used when a caller passes a non-positive TTL
            backup_ttl_multiplier: Backup TTL as a multiple of the primary TTL
            max_entries: Optional bound; the least-recently-set entry is reclaimed
            clock: Time source in seconds
        """
        self.default_ttl = default_ttl
        self.backup_ttl_multiplier = backup_ttl_multiplier
        self.max_entries = max_entries
        self._clock = clock
        self._entries: 'OrderedDict[str, CacheEntry[Any]]' = OrderedDict()
        self._lock = threading.RLock()

        self._hits = 0
        self._misses = 0
        self._stale_reads = 0
        self._evictions = 0

    def _store(self, key: str, value: Any, ttl: float) -> None:
        """Write an entry; caller holds the lock."""
        if ttl is None or ttl <= 0:
            logger.warning(f"Non-positive TTL {ttl!r} for cache key {key}, using default {self.default_ttl}s")
            ttl = self.default_ttl

        # Re-setting moves the key to the most recently set position
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(data=value, stored_at=self._clock(), ttl_seconds=ttl)

        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                evicted_key, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug(f"Evicted least recently set cache key {evicted_key}")

    def set(self, key: str, value: T, ttl: Optional[float] = None) -> bool:
        """Store ``value`` under ``key``, replacing any existing entry."""
        with self._lock:
            self._store(key, value, ttl if ttl is not None else self.default_ttl)
        return True

    def get_entry(self, key: str) -> Optional[CacheEntry[Any]]:
        """Return the raw entry regardless of expiry."""
        with self._lock:
            return self._entries.get(key)

    def get(self, key: str) -> Optional[T]:
        """Return the value if the entry exists and has not outlived its TTL."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.is_expired(self._clock()):
                self._misses += 1
                return None
            self._hits += 1
            return entry.data

    def has(self, key: str) -> bool:
        """Check if a key exists and is not expired."""
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and not entry.is_expired(self._clock())

    def is_stale(self, key: str) -> bool:
        """True iff the key was set and its entry is past its TTL."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            return entry.is_expired(self._clock())

    def set_with_degradation(self, key: str, value: T,
                             primary_ttl: Optional[float] = None,
                             backup_ttl: Optional[float] = None) -> bool:
        """Write ``key`` and its backup slot together.

        The backup TTL defaults to ``primary_ttl * backup_ttl_multiplier`` and
        never drops below the primary TTL.
        """
        ttl = primary_ttl if primary_ttl and primary_ttl > 0 else self.default_ttl
        grace_ttl = backup_ttl if backup_ttl and backup_ttl > 0 else ttl * self.backup_ttl_multiplier
        if grace_ttl < ttl:
            logger.debug(f"Backup TTL {grace_ttl}s below primary TTL {ttl}s for {key}, clamping")
            grace_ttl = ttl

        with self._lock:
            self._store(key, value, ttl)
            self._store(CacheKey.backup(key), value, grace_ttl)
        return True

    def get_with_fallback(self, key: str) -> Optional[FallbackRead[T]]:
        """Fresh primary value, else fresh backup value marked stale, else None."""
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)
            if entry is not None and not entry.is_expired(now):
                self._hits += 1
                return FallbackRead(value=entry.data, is_stale=False)

            backup = self._entries.get(CacheKey.backup(key))
            if backup is not None and not backup.is_expired(now):
                self._stale_reads += 1
                return FallbackRead(value=backup.data, is_stale=True)

            self._misses += 1
            return None

    def get_stale(self, key: str) -> Optional[T]:
        """Return any retained value for ``key`` or its backup, ignoring TTL entirely."""
        with self._lock:
            for candidate in (key, CacheKey.backup(key)):
                entry = self._entries.get(candidate)
                if entry is not None:
                    if entry.is_expired(self._clock()):
                        self._stale_reads += 1
                    else:
                        self._hits += 1
                    return entry.data
            self._misses += 1
            return None

    def delete(self, key: str) -> int:
        """Delete ``key`` and its backup slot; return the number of entries removed."""
        with self._lock:
            removed = 0
            for candidate in (key, CacheKey.backup(key)):
                if self._entries.pop(candidate, None) is not None:
                    removed += 1
            return removed

    def clear(self) -> None:
        """Clear all cache entries."""
        with self._lock:
            self._entries.clear()

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._entries.keys())

    def preload(self, entries: Iterable[Tuple[str, Any, Optional[float]]]) -> None:
        """Preload cache with (key, value, ttl) triples."""
        for key, value, ttl in entries:
            self.set(key, value, ttl)

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            lookups = self._hits + self._misses + self._stale_reads
            return {
                'size': len(self._entries),
                'max_entries': self.max_entries,
                'hits': self._hits,
                'misses': self._misses,
                'stale_reads': self._stale_reads,
                'evictions': self._evictions,
                'hit_rate': self._hits / lookups if lookups else 0.0,
            }
