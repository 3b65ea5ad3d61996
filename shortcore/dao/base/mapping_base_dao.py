"""Abstract base class for mapping data access objects (DAOs).

This class establishes a consistent contract for all mapping stores,
regardless of the underlying storage mechanism (Redis, in-memory, sharded).

Responsibilities:
    - Provide an atomic conditional write (`insert`) as the only way to
      create a mapping. Races on the same key have exactly one winner.
    - Provide point lookups by key and reverse lookups by target URL.
    - Standardize error handling across data store implementations.

Example:
    Typical usage with a datastore-specific implementation:

        >>> from shortcore.dao.memory import MappingMemoryDAO

        >>> dao = MappingMemoryDAO()
        >>> dao.put_if_absent('aaaaacb', 'https://example.com/a').created
        True
        >>> result = dao.put_if_absent('aaaaacb', 'https://example.com/b')
        >>> result.created, result.mapping.target
        (False, 'https://example.com/a')
        >>> dao.get('aaaaacb').target
        'https://example.com/a'
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from datetime import datetime
from typing import Optional

from shortcore.models import UrlMapping, WriteResult, utc_now


class MappingBaseDAO(ABC):
    """Interface for mapping data access objects (DAOs).

    Methods:
        insert(mapping: UrlMapping) -> WriteResult:
            Atomically store the mapping if its key is absent (or expired).
            Raises DataStoreError on connection or write failure.

        put_if_absent(key, target, expires_at=None) -> WriteResult:
            Conditional write for a key derived from an allocated identifier.

        put_alias(key, target, expires_at=None) -> WriteResult:
            Conditional write for a caller-chosen key.

        get(key: str) -> UrlMapping:
            Retrieve a live mapping by key.
            Raises MappingNotFoundError if the key is absent or expired.

        keys_for_target(target: str) -> list[str]:
            Return the live keys mapping to the target URL.

        scan() -> Iterator[UrlMapping]:
            Iterate over every live mapping in the store.

        delete(key: str) -> bool:
            Remove a mapping. Reserved for migrations and the expiration reaper.

        purge_expired(now=None) -> int:
            Remove expired mappings, returning how many were removed.

    Subclassing:
        Datastore-specific implementations must implement `insert`, `get`,
        `keys_for_target`, `scan`, `delete` and `purge_expired`.
        `insert` MUST be atomic per key.

    NOTE:
        - Mappings are never updated in place. A changed target needs a new key.
    """

    def put_if_absent(self, key: str, target: str, expires_at: Optional[datetime] = None) -> WriteResult:
        mapping = UrlMapping(key=key, target=target, created_at=utc_now(), expires_at=expires_at, alias=False)
        return self.insert(mapping)

    def put_alias(self, key: str, target: str, expires_at: Optional[datetime] = None) -> WriteResult:
        mapping = UrlMapping(key=key, target=target, created_at=utc_now(), expires_at=expires_at, alias=True)
        return self.insert(mapping)

    @abstractmethod
    def insert(self, mapping: UrlMapping) -> WriteResult:
        """Store a mapping only if no live mapping holds its key.

        Args:
            mapping (UrlMapping):
                The mapping to be stored.

        Returns:
            WriteResult:
                CREATED with the given mapping, or ALREADY_EXISTS with the
                mapping that currently holds the key.

        Raises:
            DataStoreError:
                If there is an error in the data store.
            DataStoreTimeoutError:
                If the write timed out and its outcome is unknown.
        """
        pass

    @abstractmethod
    def get(self, key: str) -> UrlMapping:
        """Retrieve a live mapping by key.

        Raises:
            MappingNotFoundError:
                If no live mapping holds the key.
            DataStoreError:
                If there is an error in the data store.
        """
        pass

    @abstractmethod
    def keys_for_target(self, target: str) -> list[str]:
        pass

    @abstractmethod
    def scan(self) -> Iterator[UrlMapping]:
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        pass

    @abstractmethod
    def purge_expired(self, now: Optional[datetime] = None) -> int:
        pass
