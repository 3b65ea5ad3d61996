"""URL shortening and resolution

ShortenerService ties the pieces together:

    creation:    allocator -> encoder -> conditional write -> cache
    resolution:  shape check -> cache -> store -> cache

A creation request moves through these states:

    ResolveIdentifier:
        alias given  -> validate its shape, attempt `put_alias`
        otherwise    -> allocator.next() -> encoder.encode(), attempt `put_if_absent`
    Attempt:
        CREATED                          -> Done (write-through to the cache)
        ALREADY_EXISTS, alias            -> AliasTakenError
        ALREADY_EXISTS, generated key:
            held by a generated mapping  -> AllocatorInvariantViolatedError
            held by an alias             -> burn the identifier, allocate again
        timeout, generated key           -> VerifyWrite
        timeout, alias                   -> re-raise (the caller retries)
    VerifyWrite:
        get(key) has our target          -> Done
        get(key) has another target      -> same as ALREADY_EXISTS
        get(key) finds nothing           -> one more attempt with the same key
        get(key) fails                   -> re-raise the original timeout

Uniqueness never depends on retries: the conditional write is the only
serialization point and the allocator never repeats an identifier.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from shortcore.allocator import IdentifierAllocator
from shortcore.cache import LookupCache
from shortcore.constants import Defaults
from shortcore.dao.base import MappingBaseDAO
from shortcore.dao.exceptions import CacheMissError, DataStoreError, DataStoreTimeoutError, MappingNotFoundError
from shortcore.exceptions import AliasTakenError, AllocatorInvariantViolatedError, MalformedKeyError
from shortcore.models import UrlMapping, WriteResult, utc_now
from shortcore.types import Duration, UtcClock
from shortcore.utils.encoder import KeyEncoder
from shortcore.utils.helpers import to_seconds, validate_url


logger = logging.getLogger(__name__)


class ShortenerService:
    """Create and resolve short keys

    Args:
        store (MappingBaseDAO):
            Authoritative mapping store (a single shard or a ShardedMappingDAO).
        allocator (IdentifierAllocator):
            Source of unique identifiers for generated keys.
        encoder (KeyEncoder):
            Identifier <-> key codec. Defaults to an unsalted encoder.
        cache (Optional[LookupCache]):
            Lookup cache on the resolution path. None disables caching.
        default_ttl (Optional[Duration]):
            Mapping lifetime when the caller gives none. None means mappings never expire.
        fresh_cache_ttl (Optional[Duration]):
            Cache lifetime of just-created keys. Defaults to the cache's TTL.
        max_alias_skips (int):
            Identifiers that may be burnt on alias squats within one request.
        clock (Callable[[], datetime]):
            Returns the current UTC time. Injectable for tests.
    """

    def __init__(
        self,
        store: MappingBaseDAO,
        allocator: IdentifierAllocator,
        encoder: Optional[KeyEncoder] = None,
        cache: Optional[LookupCache] = None,
        default_ttl: Optional[Duration] = None,
        fresh_cache_ttl: Optional[Duration] = None,
        max_alias_skips: int = Defaults.MAX_ALIAS_SKIPS,
        clock: UtcClock = utc_now,
    ):
        if max_alias_skips < 0:
            raise ValueError(f'Max alias skips must be non-negative (given value: {max_alias_skips}).')

        self.store = store
        self.allocator = allocator
        self.encoder = encoder or KeyEncoder()
        self.cache = cache
        self.default_ttl = to_seconds(default_ttl)
        self.fresh_cache_ttl = to_seconds(fresh_cache_ttl)
        self.max_alias_skips = max_alias_skips
        self._clock = clock

    def shorten(self, url: str, custom_alias: Optional[str] = None, ttl: Optional[Duration] = None) -> UrlMapping:
        """Create a mapping for a URL

        Args:
            url (str):
                Absolute http(s) URL to shorten.
            custom_alias (Optional[str]):
                Caller-chosen key. A key is generated when None.
            ttl (Optional[Duration]):
                Mapping lifetime in seconds or as timedelta. Defaults to the service default.

        Returns:
            UrlMapping: the stored mapping.

        Raises:
            InvalidUrlError:
                If the URL is not an absolute http(s) URL.
            MalformedKeyError:
                If the custom alias can never be a key.
            AliasTakenError:
                If the custom alias is already mapped.
            AllocatorInvariantViolatedError:
                If a generated key is already held by another generated mapping.
            ValueError / TypeError:
                If the TTL is not a positive duration.
            DataStoreError:
                If the store is unavailable. Safe to retry the whole request.
        """
        target = validate_url(url)
        expires_at = self._expiry(ttl)

        if custom_alias is not None:
            return self._shorten_alias(custom_alias, target, expires_at)
        return self._shorten_generated(target, expires_at)

    def resolve(self, key: str) -> str:
        """Return the target URL of a key

        The key shape is checked before any cache or store access.

        Raises:
            MalformedKeyError:
                If the key can never be a key.
            MappingNotFoundError:
                If no live mapping holds the key.
            DataStoreError:
                If the store is unavailable.
        """
        self._check_key(key)

        if self.cache is not None:
            try:
                return self.cache.get(key)
            except CacheMissError:
                pass

        mapping = self.store.get(key)
        self._remember(mapping)
        return mapping.target

    def lookup(self, key: str) -> UrlMapping:
        """Return the full mapping of a key, read from the authoritative store"""
        self._check_key(key)
        return self.store.get(key)

    def keys_for(self, url: str) -> list[str]:
        """Return every live key mapping to a URL"""
        return self.store.keys_for_target(validate_url(url))

    def _shorten_alias(self, alias: Any, target: str, expires_at: Optional[datetime]) -> UrlMapping:
        self._check_key(alias)

        # Timeouts propagate: the outcome of an alias write is left to the caller's retry
        result = self.store.put_alias(alias, target, expires_at)
        if not result.created:
            logger.info('Custom alias already taken.', extra={'key': alias})
            raise AliasTakenError(f"Alias '{alias}' is already taken.")

        logger.info('Created alias mapping.', extra={'key': alias})
        self._remember(result.mapping, fresh=True)
        return result.mapping

    def _shorten_generated(self, target: str, expires_at: Optional[datetime]) -> UrlMapping:
        for skips in range(self.max_alias_skips + 1):
            key = self.encoder.encode(self.allocator.next())
            result = self._attempt_generated(key, target, expires_at)

            if result.created:
                logger.info('Created mapping.', extra={'key': key})
                self._remember(result.mapping, fresh=True)
                return result.mapping

            if not result.mapping.alias:
                logger.critical(
                    'Generated key already held by a generated mapping. Identifier allocation is broken.',
                    extra={'key': key, 'existingTarget': result.mapping.target},
                )
                raise AllocatorInvariantViolatedError(f"Generated key '{key}' is already held by another generated mapping.")

            logger.warning('Generated key squatted by an alias. Allocating a fresh identifier.', extra={'key': key, 'skips': skips + 1})

        logger.critical('Too many generated keys squatted by aliases.', extra={'maxAliasSkips': self.max_alias_skips})
        raise AllocatorInvariantViolatedError(f'Gave up after {self.max_alias_skips + 1} generated keys were held by aliases.')

    def _attempt_generated(self, key: str, target: str, expires_at: Optional[datetime]) -> WriteResult:
        try:
            return self.store.put_if_absent(key, target, expires_at)
        except DataStoreTimeoutError as e:
            logger.warning('Conditional write timed out. Verifying its outcome.', extra={'key': key})
            return self._verify_write(key, target, expires_at, e)

    def _verify_write(self, key: str, target: str, expires_at: Optional[datetime], timeout: DataStoreTimeoutError) -> WriteResult:
        try:
            found = self.store.get(key)
        except MappingNotFoundError:
            # The write never landed: retry once with the same key
            return self.store.put_if_absent(key, target, expires_at)
        except DataStoreError:
            logger.warning('Could not verify timed out write.', extra={'key': key})
            raise timeout

        if found.target == target and not found.alias:
            logger.info('Timed out write had landed.', extra={'key': key})
            return WriteResult.created_with(found)
        return WriteResult.existing(found)

    def _check_key(self, key: Any) -> None:
        if not isinstance(key, str):
            raise MalformedKeyError(f'Key must be a string (given type: {type(key).__name__}).')
        self.encoder.check_shape(key)

    def _expiry(self, ttl: Optional[Duration]) -> Optional[datetime]:
        seconds = to_seconds(ttl) if ttl is not None else self.default_ttl
        if seconds is None:
            return None
        return self._clock() + timedelta(seconds=seconds)

    def _remember(self, mapping: UrlMapping, fresh: bool = False) -> None:
        if self.cache is None:
            return
        ttl = self.fresh_cache_ttl if fresh else None
        self.cache.put(mapping.key, mapping.target, ttl=ttl, expires_at=mapping.expires_at)
