from shortcore.dao.redis.redis_key_schema import RedisKeySchema
from shortcore.dao.redis.mixins import RedisClientMixin
from shortcore.dao.redis.mapping_redis_dao import MappingRedisDAO
from shortcore.dao.redis.block_authority_redis_dao import BlockAuthorityRedisDAO


__all__ = [
    'RedisKeySchema',
    'RedisClientMixin',
    'MappingRedisDAO',
    'BlockAuthorityRedisDAO',
]
