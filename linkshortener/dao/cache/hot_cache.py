"""In-process hot cache for the redirect path

This module provides a bounded TTL cache mapping short codes to redirect
targets. It is a pure read-through accelerator: entries are never persisted
and can always be rebuilt from the durable store.

Responsibilities:
    - Serve redirect targets without a durable store round trip;
    - Expire entries lazily on get() and eagerly via a periodic sweep;
    - Evict the least-recently-accessed entry when full;
    - Drop cache fills that race with an invalidation.

Classes:
    CacheEntry:
        Mutable bookkeeping for one cached short code.

    HotCache:
        Thread-safe LRU + TTL cache with a background expiry sweep.

Example:
    >>> cache = HotCache(max_size=1000, ttl=3600)
    >>> cache.start()
    >>> cache.set('abc123', 'https://example.com')
    True
    >>> cache.get('abc123')
    'https://example.com'
    >>> cache.invalidate('abc123')
    >>> cache.get('abc123') is None
    True
    >>> cache.destroy()
"""

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from linkshortener.constants import CACHE_SWEEP
from linkshortener.dao.cache.constants import HOT_TTL, HOT_MAX_SIZE, SWEEP_INTERVAL
from linkshortener.types import Clock
from linkshortener.utils.helpers import utcnow
from linkshortener.utils.scheduler import PeriodicTask


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CacheEntry:
    """One cached short code.

    `hits` is tracked for observability only; eviction is driven by
    `last_access_at` (LRU).
    """

    shortcode: str
    target: str
    inserted_at: datetime
    expires_at: datetime
    hits: int
    last_access_at: datetime

    def expired(self, now: datetime) -> bool:
        return now > self.expires_at


class HotCache:
    """Bounded, thread-safe LRU cache with TTL expiry.

    Entries live in an OrderedDict kept in access order: the first item is
    always the least-recently-accessed one, so eviction is O(1).

    All operations, including the background sweep, take the same lock.

    Every invalidate() and clear() bumps `version`. A caller that reads
    `version` before loading a record from the durable store can pass it to
    set(); the fill is dropped if that code was invalidated (or the whole
    cache cleared) in between, so a stale target can never be re-inserted
    after an update or delete. Invalidations of other codes do not affect it.

    The per-code invalidation log holds at most `max_size` codes. When the
    oldest one is pruned its version becomes a floor that every fill is
    checked against, which can only drop more fills, never fewer.

    Attributes:
        max_size (int):
            Maximum number of entries.
        ttl (int):
            Entry time-to-live in seconds.
        sweep_interval (int):
            Seconds between background cleanup_expired() runs.
    """

    def __init__(
        self,
        max_size: int = HOT_MAX_SIZE,
        ttl: int = HOT_TTL,
        sweep_interval: int = SWEEP_INTERVAL,
        clock: Clock = utcnow,
    ):
        if max_size <= 0:
            raise ValueError(f'Max size must be a positive integer (given value: {max_size}).')
        if ttl <= 0:
            raise ValueError(f'TTL must be a positive number of seconds (given value: {ttl}).')

        self.max_size = max_size
        self.ttl = ttl
        self.sweep_interval = sweep_interval

        self._clock = clock
        self._lock = threading.Lock()
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._version = 0
        self._invalidated: OrderedDict[str, int] = OrderedDict()
        self._version_floor = 0
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._sweeper = PeriodicTask(self.cleanup_expired, interval=sweep_interval, name='hot-cache-sweep')

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    def get(self, shortcode: str) -> Optional[str]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(shortcode)
            if entry is None:
                self._misses += 1
                return None

            if entry.expired(now):
                del self._entries[shortcode]
                self._misses += 1
                return None

            entry.hits += 1
            entry.last_access_at = now
            self._entries.move_to_end(shortcode)
            self._hits += 1
            return entry.target

    def set(
        self,
        shortcode: str,
        target: str,
        *,
        expires_at: Optional[datetime] = None,
        version: Optional[int] = None,
    ) -> bool:
        """Insert or overwrite a cache entry

        Args:
            shortcode (str):
                Cache key.
            target (str):
                Redirect target.
            expires_at (Optional[datetime]):
                Expiration of the underlying record. The entry never outlives it.
            version (Optional[int]):
                Value of `version` read before the record was loaded. If this
                code was invalidated since, the fill is dropped.

        Returns:
            bool: True if the entry was stored, False if the fill was dropped.
        """
        now = self._clock()
        entry_expires_at = now + timedelta(seconds=self.ttl)
        if expires_at is not None:
            entry_expires_at = min(entry_expires_at, expires_at)

        with self._lock:
            if version is not None and version < max(self._version_floor, self._invalidated.get(shortcode, 0)):
                logger.debug('Dropping stale cache fill.', extra={'shortcode': shortcode})
                return False

            if shortcode in self._entries:
                del self._entries[shortcode]
            elif len(self._entries) >= self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug('Evicted least recently used cache entry.', extra={'shortcode': evicted})

            self._entries[shortcode] = CacheEntry(
                shortcode=shortcode,
                target=target,
                inserted_at=now,
                expires_at=entry_expires_at,
                hits=0,
                last_access_at=now,
            )
            return True

    def invalidate(self, shortcode: str) -> None:
        with self._lock:
            self._version += 1
            self._entries.pop(shortcode, None)
            self._invalidated[shortcode] = self._version
            self._invalidated.move_to_end(shortcode)
            if len(self._invalidated) > self.max_size:
                _, pruned_version = self._invalidated.popitem(last=False)
                self._version_floor = pruned_version

    def cleanup_expired(self) -> int:
        """Remove every expired entry

        Returns:
            int: Number of removed entries.
        """
        now = self._clock()
        with self._lock:
            expired = [shortcode for shortcode, entry in self._entries.items() if entry.expired(now)]
            for shortcode in expired:
                del self._entries[shortcode]

        if expired:
            logger.debug('Removed %s expired cache entries.', len(expired), extra={'event': CACHE_SWEEP, 'removed': len(expired)})
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._version += 1
            self._version_floor = self._version
            self._invalidated.clear()
            self._entries.clear()

    def start(self) -> None:
        self._sweeper.start()

    def stop(self) -> None:
        self._sweeper.stop()

    def destroy(self) -> None:
        self.stop()
        self.clear()

    def entry(self, shortcode: str) -> Optional[CacheEntry]:
        """Return a snapshot of an entry without touching its recency"""
        with self._lock:
            entry = self._entries.get(shortcode)
            if entry is None:
                return None
            return CacheEntry(
                shortcode=entry.shortcode,
                target=entry.target,
                inserted_at=entry.inserted_at,
                expires_at=entry.expires_at,
                hits=entry.hits,
                last_access_at=entry.last_access_at,
            )

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                'size': len(self._entries),
                'max_size': self.max_size,
                'ttl_seconds': self.ttl,
                'hits': self._hits,
                'misses': self._misses,
                'evictions': self._evictions,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, shortcode: str) -> bool:
        with self._lock:
            return shortcode in self._entries
