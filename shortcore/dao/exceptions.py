"""Exceptions related to Data Access Objects (DAO) operations.

Classes:
    DAOError:
        Generic base class for DAO-related exceptions.

    MappingNotFoundError:
        Raised when a key has no live mapping in the data store.

    DataStoreError:
        Raised when there is an error in the data store (e.g., connection issues, OOM, etc.).

    DataStoreTimeoutError:
        Raised when a data store call timed out and its outcome is unknown.

    BlockReservationError:
        Raised when the identifier authority fails to hand out a block.

    CacheMissError:
        Raised when a requested cache entry is missing or expired.

    UnknownShardError:
        Raised when a shard assignment names a shard without a store.

    MigrationError:
        Generic base class for shard migration failures.

    MigrationConflictError:
        Raised when a migrated key already holds a different record on its new shard.

Example:
    >>> from shortcore.dao.exceptions import MappingNotFoundError
    >>> raise MappingNotFoundError("Mapping with key 'abc123' not found.")
    Traceback (most recent call last):
        ...
    shortcore.dao.exceptions.MappingNotFoundError: Mapping with key 'abc123' not found.
"""

from shortcore.exceptions import KeyNotFoundError


class DAOError(Exception):
    """Generic base class for DAO-related exceptions."""

    error_code = 'dao:dao_error'


class MappingNotFoundError(DAOError, KeyNotFoundError):
    """Exception raised when a key has no live mapping in the data store."""

    error_code = 'client:key_not_found'


class DataStoreError(DAOError):
    """Exception raised when there is an error in the data store.

    e.g. connection issues, timeouts, OOM, etc.
    """

    error_code = 'infra:data_store_error'


class DataStoreTimeoutError(DataStoreError):
    """Exception raised when a data store call timed out.

    The outcome of a timed out write is unknown: it may or may not have landed.
    """

    error_code = 'infra:data_store_timeout'


class BlockReservationError(DataStoreError):
    """Exception raised when the identifier authority fails to reserve a block."""

    error_code = 'infra:block_reservation_error'


class CacheMissError(DAOError):
    """Exception raised when a requested cache entry is missing."""

    pass


class UnknownShardError(DAOError):
    """Exception raised when a key routes to a shard without a configured store."""

    error_code = 'config:unknown_shard'


class MigrationError(DAOError):
    """Generic base class for shard migration failures."""

    error_code = 'dao:migration_error'


class MigrationConflictError(MigrationError):
    """Exception raised when a migrated key holds a different record on its new shard."""

    error_code = 'dao:migration_conflict'
