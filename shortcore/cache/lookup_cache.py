"""In-process key -> target lookup cache

Bounded LRU cache with a time-to-live per entry, sitting in front of the
mapping stores on the resolution path. It is advisory: a miss always falls
back to the authoritative store, and entries never outlive their mapping.

Built on `cachetools.TLRUCache`, whose eviction bookkeeping is not
thread-safe, so every access goes through one `threading.Lock`.

Example:
    >>> cache = LookupCache(capacity=2, ttl=60)
    >>> cache.put('aaaaacb', 'https://example.com/a')
    >>> cache.get('aaaaacb')
    'https://example.com/a'
    >>> cache.get('zzzzzzz')
    Traceback (most recent call last):
        ...
    shortcore.dao.exceptions.CacheMissError: Key 'zzzzzzz' not found in lookup cache.
"""

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from cachetools import TLRUCache

from shortcore.constants import Defaults
from shortcore.dao.exceptions import CacheMissError
from shortcore.models import utc_now
from shortcore.types import MonotonicClock, UtcClock


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    key: str
    target: str
    inserted_at: float  # timer reading at insertion
    ttl: float          # seconds


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0

    @property
    def hit_ratio(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0


def _monotonic() -> float:
    return time.monotonic()


def _time_to_use(_key: str, entry: CacheEntry, now: float) -> float:
    return now + entry.ttl


class LookupCache:
    """Thread-safe LRU + TTL cache of resolved keys

    Args:
        capacity (int):
            Maximum number of entries. The least recently used entry is
            evicted first under capacity pressure.
        ttl (float):
            Default entry lifetime in seconds.
        timer (Callable[[], float]):
            Monotonic clock in seconds. Injectable for tests.
        clock (Callable[[], datetime]):
            Current UTC time, used to cap entries by mapping expiry. Injectable for tests.
    """

    def __init__(
        self,
        capacity: int = Defaults.CACHE_CAPACITY,
        ttl: float = Defaults.CACHE_TTL,
        timer: MonotonicClock = _monotonic,
        clock: UtcClock = utc_now,
    ):
        if capacity < 1:
            raise ValueError(f'Cache capacity must be positive (given value: {capacity}).')
        if ttl <= 0:
            raise ValueError(f'Cache TTL must be positive (given value: {ttl}).')

        self.capacity = capacity
        self.default_ttl = ttl
        self.stats = CacheStats()
        self._timer = timer
        self._clock = clock
        self._entries: TLRUCache = TLRUCache(maxsize=capacity, ttu=_time_to_use, timer=timer)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            self._entries.expire()
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: str) -> str:
        """Return the cached target of a key

        Raises:
            CacheMissError:
                If the key is not cached or its entry expired.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.stats.misses += 1
                raise CacheMissError(f"Key '{key}' not found in lookup cache.")
            self.stats.hits += 1
            return entry.target

    def put(self, key: str, target: str, ttl: Optional[float] = None, expires_at: Optional[datetime] = None) -> None:
        """Cache a key -> target pair

        Args:
            key (str):
                Short key.
            target (str):
                Target URL the key resolves to.
            ttl (Optional[float]):
                Entry lifetime in seconds. Defaults to the cache's TTL.
            expires_at (Optional[datetime]):
                Expiry of the underlying mapping. The entry lifetime is capped
                so the cache never serves a key past this instant.
        """
        lifetime = self.default_ttl if ttl is None else ttl
        if expires_at is not None:
            lifetime = min(lifetime, (expires_at - self._clock()).total_seconds())

        with self._lock:
            if lifetime <= 0:
                self._entries.pop(key, None)
                return
            self._entries[key] = CacheEntry(key=key, target=target, inserted_at=self._timer(), ttl=lifetime)

    def invalidate(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info('Lookup cache cleared.')
