"""Static, versioned bucket -> shard assignment

Keys hash into a fixed number of virtual buckets with xxh64, and a table maps
every bucket to a shard id. The assignment is derived, never stored per key:

    bucket = xxh64(key) mod bucket_count
    shard  = assignments[bucket]

Changing the table is an explicit migration. `rebalanced()` builds the next
version of a table moving as few buckets as possible.

Example:
    >>> table = ShardAssignmentTable.round_robin(['s0', 's1'], buckets=4)
    >>> table.assignments
    ('s0', 's1', 's0', 's1')
    >>> grown = table.rebalanced(['s0', 's1', 's2'])
    >>> grown.version, len(table.moved_buckets(grown))
    (2, 1)
"""

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import xxhash

from shortcore.constants import Defaults
from shortcore.exceptions import BadConfigurationError
from shortcore.types import ShardId


def bucket_of(key: str, bucket_count: int) -> int:
    return xxhash.xxh64_intdigest(key.encode('utf-8')) % bucket_count


@dataclass(frozen=True)
class ShardAssignmentTable:
    """Immutable bucket -> shard table

    Attributes:
        version (int):
            Table version. A migration always moves to version + 1.
        assignments (tuple[str, ...]):
            Shard id of every bucket, indexed by bucket.
    """

    version: int
    assignments: tuple[ShardId, ...]

    def __post_init__(self):
        if self.version < 1:
            raise BadConfigurationError(f'Shard table version must be positive (given value: {self.version}).')
        if not self.assignments:
            raise BadConfigurationError('Shard table must have at least one bucket.')
        # Accept any sequence, store a tuple
        object.__setattr__(self, 'assignments', tuple(self.assignments))

    @property
    def bucket_count(self) -> int:
        return len(self.assignments)

    @property
    def shard_ids(self) -> list[ShardId]:
        return sorted(set(self.assignments))

    def bucket_for(self, key: str) -> int:
        return bucket_of(key, self.bucket_count)

    def shard_for(self, key: str) -> ShardId:
        return self.assignments[self.bucket_for(key)]

    def moved_buckets(self, other: 'ShardAssignmentTable') -> list[int]:
        """Return the buckets whose shard differs between this table and `other`"""
        if other.bucket_count != self.bucket_count:
            raise BadConfigurationError(f'Shard tables have different bucket counts ({self.bucket_count} != {other.bucket_count}).')
        return [bucket for bucket, (old, new) in enumerate(zip(self.assignments, other.assignments)) if old != new]

    def rebalanced(self, shard_ids: Iterable[ShardId]) -> 'ShardAssignmentTable':
        """Spread buckets evenly over `shard_ids`, moving as few buckets as possible

        Buckets stay where they are unless their shard was removed or holds
        more than its fair share. Freed buckets go to the emptiest shards.
        """
        shard_ids = sorted(set(shard_ids))
        if not shard_ids:
            raise BadConfigurationError('Cannot rebalance onto an empty set of shards.')

        base, extra = divmod(self.bucket_count, len(shard_ids))
        counts = Counter(self.assignments)
        # Shards currently holding the most buckets keep the larger quotas
        by_load = sorted(shard_ids, key=lambda shard: (-counts.get(shard, 0), shard))
        quota = {shard: base + (1 if rank < extra else 0) for rank, shard in enumerate(by_load)}

        assignments: list[ShardId | None] = []
        kept: Counter = Counter()
        for shard in self.assignments:
            if shard in quota and kept[shard] < quota[shard]:
                kept[shard] += 1
                assignments.append(shard)
            else:
                assignments.append(None)

        for bucket, shard in enumerate(assignments):
            if shard is None:
                receiver = min(shard_ids, key=lambda s: (kept[s] - quota[s], s))
                kept[receiver] += 1
                assignments[bucket] = receiver

        return ShardAssignmentTable(version=self.version + 1, assignments=tuple(assignments))

    @classmethod
    def round_robin(cls, shard_ids: Iterable[ShardId], buckets: int = Defaults.SHARD_BUCKETS, version: int = 1) -> 'ShardAssignmentTable':
        shard_ids = sorted(set(shard_ids))
        if not shard_ids:
            raise BadConfigurationError('Shard table needs at least one shard.')
        if buckets < len(shard_ids):
            raise BadConfigurationError(f'Need at least one bucket per shard ({buckets} buckets, {len(shard_ids)} shards).')
        return cls(version=version, assignments=tuple(shard_ids[bucket % len(shard_ids)] for bucket in range(buckets)))

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> 'ShardAssignmentTable':
        """Build a table from the `sharding` configuration section

        Either an explicit `assignments` list, or `shards` (+ optional
        `buckets`) laid out round robin:

            {"version": 3, "assignments": ["s0", "s1", "s1", "s0"]}
            {"version": 1, "buckets": 64, "shards": ["s0", "s1"]}
        """
        version = int(config.get('version', 1))
        if 'assignments' in config:
            return cls(version=version, assignments=tuple(config['assignments']))
        if 'shards' in config:
            return cls.round_robin(config['shards'], buckets=int(config.get('buckets', Defaults.SHARD_BUCKETS)), version=version)
        raise BadConfigurationError("Sharding configuration needs either 'assignments' or 'shards'.")
