"""In-process mapping store

An ordered, thread-safe shard kept in process memory. It serves local runs and
tests, and backs the `memory` backend. A `threading.Lock` makes the
conditional write atomic, which for a single process is equivalent to the
server-side script of the Redis store.

Keys are kept in a sorted index (`bisect`), so ordered scans are O(n) and
point lookups O(1); expiry is enforced on read and by `purge_expired`.
"""

import bisect
import logging
import threading
from collections import defaultdict
from collections.abc import Callable, Iterator
from datetime import datetime
from typing import Optional

from beartype import beartype

from shortcore.models import UrlMapping, WriteResult, utc_now
from shortcore.dao.base import MappingBaseDAO
from shortcore.dao.exceptions import MappingNotFoundError


logger = logging.getLogger(__name__)


class MappingMemoryDAO(MappingBaseDAO):
    """Thread-safe in-memory implementation of MappingBaseDAO

    Args:
        clock (Callable[[], datetime]):
            Returns the current UTC time. Injectable for tests.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._clock = clock
        self._records: dict[str, UrlMapping] = {}
        self._index: list[str] = []
        self._targets: dict[str, set[str]] = defaultdict(set)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            now = self._clock()
            return sum(1 for mapping in self._records.values() if not mapping.is_expired(now))

    @beartype
    def insert(self, mapping: UrlMapping) -> WriteResult:
        with self._lock:
            existing = self._records.get(mapping.key)
            if existing is not None:
                if not existing.is_expired(self._clock()):
                    return WriteResult.existing(existing)
                # An expired mapping no longer holds its key
                self._remove(mapping.key)

            self._records[mapping.key] = mapping
            bisect.insort(self._index, mapping.key)
            self._targets[mapping.target].add(mapping.key)
            return WriteResult.created_with(mapping)

    @beartype
    def get(self, key: str) -> UrlMapping:
        with self._lock:
            mapping = self._records.get(key)
            if mapping is None or mapping.is_expired(self._clock()):
                raise MappingNotFoundError(f"Mapping with key '{key}' not found.")
            return mapping

    @beartype
    def keys_for_target(self, target: str) -> list[str]:
        with self._lock:
            now = self._clock()
            return sorted(key for key in self._targets.get(target, ()) if not self._records[key].is_expired(now))

    def scan(self) -> Iterator[UrlMapping]:
        # Snapshot under the lock, yield outside of it
        with self._lock:
            now = self._clock()
            snapshot = [self._records[key] for key in self._index]
        for mapping in snapshot:
            if not mapping.is_expired(now):
                yield mapping

    @beartype
    def delete(self, key: str) -> bool:
        with self._lock:
            if key not in self._records:
                return False
            self._remove(key)
            return True

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Remove every expired mapping (the expiration reaper's sweep)"""
        with self._lock:
            now = now or self._clock()
            expired = [key for key, mapping in self._records.items() if mapping.is_expired(now)]
            for key in expired:
                self._remove(key)

        if expired:
            logger.info('Purged expired mappings.', extra={'purged': len(expired)})
        return len(expired)

    def _remove(self, key: str) -> None:
        mapping = self._records.pop(key)
        position = bisect.bisect_left(self._index, key)
        del self._index[position]

        keys = self._targets[mapping.target]
        keys.discard(key)
        if not keys:
            del self._targets[mapping.target]
