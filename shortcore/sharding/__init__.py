from shortcore.sharding.assignment import ShardAssignmentTable, bucket_of
from shortcore.sharding.router import ShardRouter
from shortcore.sharding.sharded_mapping_dao import ShardedMappingDAO
from shortcore.sharding.migration import ShardMigration, MigrationReport


__all__ = [
    'ShardAssignmentTable',
    'bucket_of',
    'ShardRouter',
    'ShardedMappingDAO',
    'ShardMigration',
    'MigrationReport',
]
