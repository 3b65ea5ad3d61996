import logging
import threading
from typing import Optional

from shortcore.exceptions import BadConfigurationError
from shortcore.sharding.assignment import ShardAssignmentTable
from shortcore.types import ShardId


logger = logging.getLogger(__name__)


class ShardRouter:
    """Route keys to shards through the installed assignment table

    While a migration is pending, the pending table decides ownership and the
    installed table names the previous owner of every moved bucket, so that
    callers can keep both shards consistent until cutover.

    Example:
        >>> router = ShardRouter(ShardAssignmentTable.round_robin(['s0'], buckets=4))
        >>> router.owners('aaaaacb')
        ('s0', None)
        >>> router.begin_migration(ShardAssignmentTable(version=2, assignments=('s1',) * 4))
        >>> router.owners('aaaaacb')
        ('s1', 's0')
    """

    def __init__(self, table: ShardAssignmentTable):
        self._table = table
        self._pending: Optional[ShardAssignmentTable] = None
        self._lock = threading.Lock()

    @property
    def table(self) -> ShardAssignmentTable:
        return self._table

    @property
    def pending(self) -> Optional[ShardAssignmentTable]:
        return self._pending

    @property
    def migrating(self) -> bool:
        return self._pending is not None

    @property
    def shard_ids(self) -> list[ShardId]:
        """Every shard named by the installed or pending table"""
        with self._lock:
            ids = set(self._table.assignments)
            if self._pending is not None:
                ids.update(self._pending.assignments)
        return sorted(ids)

    def shard_for(self, key: str) -> ShardId:
        return self.owners(key)[0]

    def owners(self, key: str) -> tuple[ShardId, Optional[ShardId]]:
        """Return (owner, previous owner) of a key

        The previous owner is None unless a pending migration moves the key's bucket.
        """
        with self._lock:
            table, pending = self._table, self._pending

        current = table.shard_for(key)
        if pending is None:
            return current, None
        target = pending.shard_for(key)
        return (target, current) if target != current else (target, None)

    def begin_migration(self, table: ShardAssignmentTable) -> None:
        with self._lock:
            if self._pending is not None:
                raise BadConfigurationError(f'Migration to shard table v{self._pending.version} is already pending.')
            if table.version != self._table.version + 1:
                raise BadConfigurationError(f'Shard table version must advance by one (v{self._table.version} -> v{table.version}).')
            if table.bucket_count != self._table.bucket_count:
                raise BadConfigurationError('Shard tables must have the same bucket count.')
            self._pending = table

        logger.info('Shard migration started.', extra={'fromVersion': self._table.version, 'toVersion': table.version})

    def cutover(self) -> ShardAssignmentTable:
        """Install the pending table and return the table it replaced"""
        with self._lock:
            if self._pending is None:
                raise BadConfigurationError('No shard migration is pending.')
            previous, self._table, self._pending = self._table, self._pending, None

        logger.info('Shard table cut over.', extra={'fromVersion': previous.version, 'toVersion': self._table.version})
        return previous

    def abort_migration(self) -> None:
        with self._lock:
            pending, self._pending = self._pending, None
        if pending is not None:
            logger.warning('Shard migration aborted.', extra={'fromVersion': self._table.version, 'toVersion': pending.version})
