import pytest

from shortcore.dao.memory import MappingMemoryDAO
from shortcore.sharding import ShardAssignmentTable, ShardedMappingDAO, ShardRouter


@pytest.fixture
def table() -> ShardAssignmentTable:
    return ShardAssignmentTable.round_robin(['s0', 's1'], buckets=16)


@pytest.fixture
def shards() -> dict[str, MappingMemoryDAO]:
    return {shard_id: MappingMemoryDAO() for shard_id in ('s0', 's1', 's2')}


@pytest.fixture
def store(shards, table) -> ShardedMappingDAO:
    return ShardedMappingDAO(shards, ShardRouter(table))


@pytest.fixture
def keys() -> list[str]:
    return [f'key{i:03d}' for i in range(300)]
