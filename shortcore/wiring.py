"""Build a ShortenerService from a configuration document

Functions:
    memory_backend(shard_ids) -> tuple[dict[str, MappingMemoryDAO], BlockAuthorityMemoryDAO]
        Process-wide in-memory shards and block authority.
    build_stores(app_config) -> tuple[MappingBaseDAO, BlockAuthorityBaseDAO | None]
        Construct the (sharded) mapping store and the block authority.
    build_allocator(settings, authority) -> IdentifierAllocator
        Construct the configured identifier allocator.
    build_service(app_config) -> ShortenerService
        Wire stores, allocator, encoder and cache into a service.
    get_service(function_name) -> ShortenerService
        Memoized `build_service(load_config(function_name))` per warm process.

Backends:
    redis:
        {"shards": {"s0": {"host": ..., "port": ..., "db": ...}, ...},
         "authority": {"host": ..., "port": ..., "db": ...}}
        A single-node deployment may give the connection parameters directly,
        which define shard 's0' and the authority alike.
    memory:
        {"shards": ["s0", "s1"]}  (in-process; local runs and tests only)
        Every function of one process shares the same in-memory shards, so a
        key shortened locally resolves through the redirect handler.
"""

import functools
import logging
from typing import Any, Optional

from shortcore.allocator import BlockIdentifierAllocator, CompositeIdentifierAllocator, IdentifierAllocator
from shortcore.cache import LookupCache
from shortcore.dao.base import BlockAuthorityBaseDAO, MappingBaseDAO
from shortcore.dao.memory import BlockAuthorityMemoryDAO, MappingMemoryDAO
from shortcore.dao.redis import BlockAuthorityRedisDAO, MappingRedisDAO
from shortcore.exceptions import BadConfigurationError
from shortcore.service import ShortenerService
from shortcore.sharding import ShardAssignmentTable, ShardedMappingDAO, ShardRouter
from shortcore.types import AppConfig, RedisConnectionConfig
from shortcore.utils.config import ServiceSettings, app_prefix, load_config
from shortcore.utils.encoder import KeyEncoder


logger = logging.getLogger(__name__)

DEFAULT_SHARD_ID = 's0'


def _redis_kwargs(connection: RedisConnectionConfig) -> dict[str, Any]:
    return {f'redis_{k}': v for k, v in connection.items()}


def _redis_connections(section: dict[str, Any]) -> tuple[dict[str, RedisConnectionConfig], RedisConnectionConfig]:
    if 'shards' in section:
        shards = dict(section['shards'])
        if not shards:
            raise BadConfigurationError('Redis backend needs at least one shard.')
        authority = section.get('authority') or shards[sorted(shards)[0]]
        return shards, authority
    # Single node: the section holds the connection parameters
    return {DEFAULT_SHARD_ID: section}, section


def _routing_table(app_config: AppConfig, shard_ids: list[str]) -> ShardAssignmentTable:
    sharding = app_config.get('sharding') or {}
    if sharding:
        return ShardAssignmentTable.from_config(sharding)
    return ShardAssignmentTable.round_robin(shard_ids)


@functools.lru_cache(maxsize=None)
def memory_backend(shard_ids: tuple[str, ...]) -> tuple[dict[str, MappingMemoryDAO], BlockAuthorityMemoryDAO]:
    """Return the in-process shards and authority, shared by every function of this process"""
    return {shard_id: MappingMemoryDAO() for shard_id in shard_ids}, BlockAuthorityMemoryDAO()


def build_stores(app_config: AppConfig) -> tuple[MappingBaseDAO, Optional[BlockAuthorityBaseDAO]]:
    backend = app_config.get('backend')
    section = app_config.get(backend) or {}
    prefix = app_prefix()

    if backend == 'redis':
        connections, authority_connection = _redis_connections(section)
        shards = {shard_id: MappingRedisDAO(**_redis_kwargs(connection), prefix=prefix) for shard_id, connection in connections.items()}
        authority = BlockAuthorityRedisDAO(**_redis_kwargs(authority_connection), prefix=prefix)
    elif backend == 'memory':
        shards, authority = memory_backend(tuple(section.get('shards') or [DEFAULT_SHARD_ID]))
    else:
        raise BadConfigurationError(f"Unsupported backend {backend!r}. Use 'redis' or 'memory'.")

    table = _routing_table(app_config, sorted(shards))
    store = ShardedMappingDAO(shards, ShardRouter(table))
    logger.info('Built mapping stores.', extra={'backend': backend, 'shards': sorted(shards), 'tableVersion': table.version})
    return store, authority


def build_allocator(settings: ServiceSettings, authority: Optional[BlockAuthorityBaseDAO]) -> IdentifierAllocator:
    if settings.allocator == 'composite':
        return CompositeIdentifierAllocator(node_id=settings.node_id)
    if authority is None:
        raise BadConfigurationError('Block allocator needs a block authority.')
    return BlockIdentifierAllocator(authority, node_id=settings.node_id, block_size=settings.block_size)


def build_service(app_config: AppConfig) -> ShortenerService:
    settings = ServiceSettings.from_config(app_config)
    store, authority = build_stores(app_config)

    cache = None
    if settings.cache_capacity > 0:
        cache = LookupCache(capacity=settings.cache_capacity, ttl=settings.cache_ttl_seconds)

    return ShortenerService(
        store=store,
        allocator=build_allocator(settings, authority),
        encoder=KeyEncoder(min_length=settings.key_min_length, salt=settings.key_salt),
        cache=cache,
        default_ttl=settings.default_ttl_seconds,
        fresh_cache_ttl=settings.fresh_cache_ttl_seconds,
        max_alias_skips=settings.max_alias_skips,
    )


@functools.lru_cache(maxsize=None)
def get_service(function_name: str) -> ShortenerService:
    """Return this process's service for a function, building it on first use"""
    logger.debug('Building service for warm process.', extra={'functionName': function_name})
    return build_service(load_config(function_name))
