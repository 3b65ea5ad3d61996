"""Explicit shard migration: plan, copy, cutover, cleanup

Steps:
    - plan:     list the buckets whose owner changes
    - copy:     start the migration on the router, then conditionally
                re-insert every mapping of a moved bucket on its new owner
    - cutover:  install the new table
    - cleanup:  delete moved keys from the shards that no longer own them

Every key stays resolvable throughout: before cutover the router falls back
to the previous owner, after copy the new owner holds the key.

Example:
    >>> from shortcore.dao.memory import MappingMemoryDAO
    >>> table = ShardAssignmentTable.round_robin(['s0'], buckets=8)
    >>> store = ShardedMappingDAO({'s0': MappingMemoryDAO(), 's1': MappingMemoryDAO()}, ShardRouter(table))
    >>> report = ShardMigration(store, table.rebalanced(['s0', 's1'])).run()
    >>> report.to_version, len(report.moved_buckets)
    (2, 4)
"""

import logging
from dataclasses import dataclass, field

from shortcore.dao.exceptions import MigrationConflictError, MigrationError
from shortcore.sharding.assignment import ShardAssignmentTable
from shortcore.sharding.router import ShardRouter
from shortcore.sharding.sharded_mapping_dao import ShardedMappingDAO


logger = logging.getLogger(__name__)


# fmt: off
@dataclass
class MigrationReport:
    from_version: int
    to_version: int
    moved_buckets: list[int] = field(default_factory=list)
    copied: int = 0           # Mappings written to their new owner
    already_present: int = 0  # Identical mappings found on the new owner
    deleted: int = 0          # Stale copies removed from previous owners
# fmt: on


class ShardMigration:
    """Move a sharded store to a new assignment table

    Args:
        store (ShardedMappingDAO):
            The sharded store, with stores for every shard of both tables.
        new_table (ShardAssignmentTable):
            Target table. Its version must be the installed version + 1.
    """

    def __init__(self, store: ShardedMappingDAO, new_table: ShardAssignmentTable):
        self.store = store
        self.new_table = new_table
        self.old_table = store.router.table
        self.report = MigrationReport(from_version=self.old_table.version, to_version=new_table.version)

    @property
    def router(self) -> ShardRouter:
        return self.store.router

    def plan(self) -> list[int]:
        self.report.moved_buckets = self.old_table.moved_buckets(self.new_table)
        return self.report.moved_buckets

    def copy(self) -> MigrationReport:
        """Copy every mapping of a moved bucket onto its new owner

        Raises:
            MigrationConflictError:
                If the new owner already holds a different mapping under a moved key.
        """
        moved = set(self.plan())
        if self.router.pending is None:
            self.store.begin_migration(self.new_table)

        sources = sorted({self.old_table.assignments[bucket] for bucket in moved})
        for shard_id in sources:
            for mapping in self.store.shard(shard_id).scan():
                bucket = self.old_table.bucket_for(mapping.key)
                if bucket not in moved or self.old_table.assignments[bucket] != shard_id:
                    continue

                new_owner = self.new_table.assignments[bucket]
                result = self.store.shard(new_owner).insert(mapping)
                if result.created:
                    self.report.copied += 1
                elif result.mapping == mapping:
                    self.report.already_present += 1
                else:
                    logger.critical(
                        'Migrated key holds a different mapping on its new shard.',
                        extra={'key': mapping.key, 'source': shard_id, 'destination': new_owner},
                    )
                    raise MigrationConflictError(f"Key '{mapping.key}' holds a different mapping on shard '{new_owner}'.")

        logger.info('Copied moved buckets.', extra={'toVersion': self.new_table.version, 'copied': self.report.copied, 'alreadyPresent': self.report.already_present})
        return self.report

    def cutover(self) -> MigrationReport:
        self.router.cutover()
        return self.report

    def cleanup(self) -> MigrationReport:
        """Delete keys from shards that no longer own them (after cutover only)"""
        if self.router.table.version != self.new_table.version:
            raise MigrationError('Cleanup requires the new shard table to be installed.')

        for shard_id in self.old_table.shard_ids:
            shard = self.store.shard(shard_id)
            stale = [mapping.key for mapping in shard.scan() if self.new_table.shard_for(mapping.key) != shard_id]
            for key in stale:
                if shard.delete(key):
                    self.report.deleted += 1

        logger.info('Removed migrated keys from previous owners.', extra={'toVersion': self.new_table.version, 'deleted': self.report.deleted})
        return self.report

    def run(self) -> MigrationReport:
        self.copy()
        self.cutover()
        self.cleanup()
        return self.report
