"""Data Access Object (DAO) implementation for managing mappings in Redis

This module provides a Redis-based implementation of MappingBaseDAO. One DAO
talks to one Redis node, i.e. one shard.

Responsibilities:
    - Atomically insert mappings (conditional write) and retrieve them by key;
    - Maintain the URL -> keys reverse index next to the mappings;
    - Mirror each mapping's expiry with a native Redis TTL;
    - Translate Redis failures into the matching DAO exceptions.

Persisted layout:
    <prefix>:mappings:<key>          -> JSON {"target", "created_at", "expires_at", "alias"}
    <prefix>:targets:<xxh64(target)> -> SET of keys mapping to the target

Classes:
    MappingRedisDAO:
        DAO for storing and retrieving UrlMapping in a Redis datastore.

Example:
    >>> from shortcore.dao.redis import MappingRedisDAO

    >>> dao = MappingRedisDAO(prefix="shortcore:dev")
    >>> dao.put_if_absent('aaaaacb', 'https://example.com/page').created
    True
    >>> dao.get('aaaaacb').target
    'https://example.com/page'
    >>> dao.put_if_absent('aaaaacb', 'https://example.com/other').mapping.target
    'https://example.com/page'
"""

import itertools
import json
import logging
import math
from collections.abc import Iterator
from datetime import datetime
from typing import Optional

from beartype import beartype

from shortcore.models import UrlMapping, WriteResult
from shortcore.dao.base import MappingBaseDAO
from shortcore.dao.redis.mixins import RedisClientMixin
from shortcore.dao.redis.helpers import handle_redis_connection_error
from shortcore.dao.exceptions import MappingNotFoundError


logger = logging.getLogger(__name__)

SCAN_BATCH_SIZE = 500

# KEYS[1] = mapping key, KEYS[2] = target index key
# ARGV[1] = record JSON, ARGV[2] = expiry as unix milliseconds (0 = never), ARGV[3] = short key
#
# Returns the existing record when the key is taken, nil after a successful write.
INSERT_IF_ABSENT_SCRIPT = """
local existing = redis.call('GET', KEYS[1])
if existing then
    return existing
end
redis.call('SET', KEYS[1], ARGV[1])
local expire_at = tonumber(ARGV[2])
if expire_at > 0 then
    redis.call('PEXPIREAT', KEYS[1], expire_at)
end
redis.call('SADD', KEYS[2], ARGV[3])
return false
"""


class MappingRedisDAO(RedisClientMixin, MappingBaseDAO):
    """Redis-based Data Access Object (DAO) for managing key -> URL mappings

    Attributes (see RedisClientMixin):
        redis (redis.Redis):
            Redis client used to communicate with the Redis datastore.
        keys (RedisKeySchema):
            Key schema helper for generating namespaced Redis keys.

    Methods:
        insert(mapping: UrlMapping) -> WriteResult:
            Conditional write executed as a single server-side Lua script.
        get(key: str) -> UrlMapping:
            Raises MappingNotFoundError when the key doesn't exist.
        keys_for_target(target: str) -> list[str]:
            Reverse lookup, pruning index entries of expired mappings.
        scan() -> Iterator[UrlMapping]:
            Iterate over every mapping of this shard.
        delete(key: str) -> bool:
            Remove a mapping and its reverse index entry.
        purge_expired(now=None) -> int:
            No-op: Redis expires mappings natively.

    All methods raise DataStoreError on connectivity issues with Redis and
    DataStoreTimeoutError on timeouts.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._insert_script = self.redis.register_script(INSERT_IF_ABSENT_SCRIPT)

    @handle_redis_connection_error
    @beartype
    def insert(self, mapping: UrlMapping) -> WriteResult:
        """Insert a mapping into Redis if its key is free

        The GET-or-SET, the expiry and the reverse index update run inside one
        Lua script, so Redis serializes concurrent writers of the same key:
        exactly one of them observes CREATED.

        Args:
            mapping (UrlMapping):
                The mapping to be stored.

        Returns:
            WriteResult:
                CREATED with `mapping`, or ALREADY_EXISTS with the stored record.

        Raises:
            DataStoreError:
                If a Redis connection issue occurs.
            DataStoreTimeoutError:
                If the script timed out (outcome unknown).
        """
        # fmt: off
        expire_at_ms = math.ceil(mapping.expires_at.timestamp() * 1000) \
                       if mapping.expires_at is not None else 0
        # fmt: on
        existing = self._insert_script(
            keys=[self.keys.mapping_key(mapping.key), self.keys.target_index_key(mapping.target)],
            args=[json.dumps(mapping.to_record()), expire_at_ms, mapping.key],
        )

        if existing is None:
            return WriteResult.created_with(mapping)
        return WriteResult.existing(UrlMapping.from_record(mapping.key, json.loads(existing)))

    @handle_redis_connection_error
    @beartype
    def get(self, key: str) -> UrlMapping:
        """Retrieve a stored mapping by key

        Raises:
            MappingNotFoundError:
                If the mapping does not exist or has expired.
            DataStoreError:
                If Redis connectivity issues occur.

        Example:
            >>> dao.get('aaaaacb')
            UrlMapping(key='aaaaacb', target='https://example.com', ...)
        """
        record = self.redis.get(self.keys.mapping_key(key))
        if record is None:
            raise MappingNotFoundError(f"Mapping with key '{key}' not found.")

        mapping = UrlMapping.from_record(key, json.loads(record))
        # Redis expiry has millisecond precision; the record is the authority
        if mapping.is_expired():
            raise MappingNotFoundError(f"Mapping with key '{key}' has expired.")
        return mapping

    @handle_redis_connection_error
    @beartype
    def keys_for_target(self, target: str) -> list[str]:
        index_key = self.keys.target_index_key(target)
        members = sorted(self.redis.smembers(index_key))
        if not members:
            return []

        records = self.redis.mget([self.keys.mapping_key(key) for key in members])
        live, stale = [], []
        for key, record in zip(members, records):
            # Different targets may share a digest; compare the real target
            if record is None:
                stale.append(key)
            elif json.loads(record)['target'] == target:
                live.append(key)

        if stale:
            logger.debug('Pruning stale reverse index entries.', extra={'indexKey': index_key, 'stale': len(stale)})
            self.redis.srem(index_key, *stale)
        return live

    def scan(self) -> Iterator[UrlMapping]:
        """Iterate over every live mapping of this shard, one SCAN page at a time"""
        cursor = 0
        while True:
            cursor, mappings = self._scan_page(cursor)
            yield from mappings
            if cursor == 0:
                break

    @handle_redis_connection_error
    def _scan_page(self, cursor: int) -> tuple[int, list[UrlMapping]]:
        cursor, redis_keys = self.redis.scan(cursor=cursor, match=self.keys.mapping_pattern(), count=SCAN_BATCH_SIZE)
        mappings = []
        for batch in itertools.batched(redis_keys, SCAN_BATCH_SIZE):
            for redis_key, record in zip(batch, self.redis.mget(batch)):
                if record is None:  # expired between SCAN and MGET
                    continue
                mapping = UrlMapping.from_record(self.keys.key_from_mapping_key(redis_key), json.loads(record))
                if not mapping.is_expired():
                    mappings.append(mapping)
        return int(cursor), mappings

    @handle_redis_connection_error
    @beartype
    def delete(self, key: str) -> bool:
        mapping_key = self.keys.mapping_key(key)
        record = self.redis.get(mapping_key)
        if record is None:
            return False

        target = json.loads(record)['target']
        with self.redis.pipeline(transaction=True) as pipe:
            pipe.delete(mapping_key)
            pipe.srem(self.keys.target_index_key(target), key)
            deleted, _ = pipe.execute()
        return bool(deleted)

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Return 0: Redis evicts expired mappings itself via PEXPIREAT.

        Reverse index entries of expired mappings are pruned lazily by
        `keys_for_target`.
        """
        return 0
