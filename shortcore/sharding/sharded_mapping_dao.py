"""Mapping store spread over several shards

`ShardedMappingDAO` is itself a `MappingBaseDAO`: every point operation goes
to the single shard owning the key, so the conditional write of that shard is
the per-key serialization point and key uniqueness holds across the whole
keyspace.

During a migration a moved key has two candidate homes. Writes land on the
new owner only after checking that the previous owner does not hold the key;
reads try the new owner first and fall back to the previous one.

Every node must observe the migration (`begin_migration`) before buckets are
copied, otherwise a node still routing by the old table could create a key
on the previous owner after the absence check.
"""

import itertools
import logging
from collections.abc import Iterator, Mapping
from datetime import datetime
from typing import Optional

from shortcore.dao.base import MappingBaseDAO
from shortcore.dao.exceptions import MappingNotFoundError, UnknownShardError
from shortcore.models import UrlMapping, WriteResult
from shortcore.sharding.assignment import ShardAssignmentTable
from shortcore.sharding.router import ShardRouter
from shortcore.types import ShardId


logger = logging.getLogger(__name__)


class ShardedMappingDAO(MappingBaseDAO):
    """Route mapping operations to per-shard stores

    Args:
        shards (Mapping[str, MappingBaseDAO]):
            Store of every shard id named by the router's tables.
        router (ShardRouter):
            Key -> shard routing.

    Raises:
        UnknownShardError:
            If the router names a shard without a store.
    """

    def __init__(self, shards: Mapping[ShardId, MappingBaseDAO], router: ShardRouter):
        self._shards = dict(shards)
        self.router = router
        self._check_shards(router.shard_ids)

    @property
    def shard_ids(self) -> list[ShardId]:
        return sorted(self._shards)

    def shard(self, shard_id: ShardId) -> MappingBaseDAO:
        try:
            return self._shards[shard_id]
        except KeyError:
            raise UnknownShardError(f"No store configured for shard '{shard_id}'.") from None

    def begin_migration(self, table: ShardAssignmentTable) -> None:
        self._check_shards(table.assignments)
        self.router.begin_migration(table)

    def insert(self, mapping: UrlMapping) -> WriteResult:
        owner, previous = self.router.owners(mapping.key)
        if previous is not None:
            # Moved bucket: the key may still live on its previous owner
            try:
                return WriteResult.existing(self.shard(previous).get(mapping.key))
            except MappingNotFoundError:
                pass
        return self.shard(owner).insert(mapping)

    def get(self, key: str) -> UrlMapping:
        owner, previous = self.router.owners(key)
        try:
            return self.shard(owner).get(key)
        except MappingNotFoundError:
            if previous is None:
                raise
        return self.shard(previous).get(key)

    def keys_for_target(self, target: str) -> list[str]:
        keys = set()
        for shard_id in self.shard_ids:
            keys.update(self._shards[shard_id].keys_for_target(target))
        return sorted(keys)

    def scan(self) -> Iterator[UrlMapping]:
        stream = itertools.chain.from_iterable(self._shards[shard_id].scan() for shard_id in self.shard_ids)
        if not self.router.migrating:
            yield from stream
            return

        # Copied keys live on two shards until cleanup
        seen = set()
        for mapping in stream:
            if mapping.key not in seen:
                seen.add(mapping.key)
                yield mapping

    def delete(self, key: str) -> bool:
        owner, previous = self.router.owners(key)
        deleted = self.shard(owner).delete(key)
        if previous is not None:
            deleted = self.shard(previous).delete(key) or deleted
        return deleted

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        return sum(self._shards[shard_id].purge_expired(now) for shard_id in self.shard_ids)

    def _check_shards(self, shard_ids) -> None:
        missing = sorted(set(shard_ids) - set(self._shards))
        if missing:
            raise UnknownShardError(f'No store configured for shards: {", ".join(missing)}.')
