import functools
from collections.abc import Callable

import xxhash


__all__ = ['RedisKeySchema']  # hide internal decorator prefix_key from imports


def prefix_key(func: Callable) -> Callable:
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs) -> str:
        key = func(self, *args, **kwargs)
        return f'{self.prefix}:{key}' if self.prefix is not None else key

    return wrapper


class RedisKeySchema:
    """Provide standardized Redis keys for storing mappings and identifier blocks.

    An optional prefix can be provided to namespace all generated keys.
    It is highly encouraged to set a custom prefix for each app and environment,
    e.g. "shortcore:prod" or "shortcore:dev".
    """

    def __init__(self, prefix: str | None = None):
        if prefix is not None and not isinstance(prefix, str):
            raise TypeError(f'Prefix must be of type string (given type: {type(prefix)}).')

        self.prefix = prefix

    @prefix_key
    def mapping_key(self, key: str) -> str:
        return f'mappings:{key}'

    def mapping_pattern(self) -> str:
        return self.mapping_key('*')

    def key_from_mapping_key(self, redis_key: str) -> str:
        return redis_key[len(self.mapping_key('')) :]

    @prefix_key
    def target_index_key(self, target: str) -> str:
        # Targets have arbitrary length, so the index is keyed by their digest
        return f'targets:{xxhash.xxh64_hexdigest(target)}'

    @prefix_key
    def identifier_counter_key(self) -> str:
        return 'identifiers:counter'

    @prefix_key
    def identifier_blocks_key(self) -> str:
        return 'identifiers:blocks'
