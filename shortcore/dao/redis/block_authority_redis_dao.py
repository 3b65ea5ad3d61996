"""Redis-backed identifier block authority

The authority keeps a single high-water mark. INCRBY is atomic on the Redis
server, so every caller, on any node, receives a disjoint range. A node that
crashes mid-block only wastes the rest of its block.

    <prefix>:identifiers:counter -> highest identifier handed out so far
    <prefix>:identifiers:blocks  -> HASH "<start>-<end>" -> "<node id>:<unix time>"

Example:
    >>> from shortcore.dao.redis import BlockAuthorityRedisDAO
    >>> authority = BlockAuthorityRedisDAO(prefix='shortcore:dev')
    >>> authority.reserve_block(node_id=1, size=1000)
    (1, 1000)
    >>> authority.reserve_block(node_id=2, size=1000)
    (1001, 2000)
"""

import logging
import time

import redis
from beartype import beartype

from shortcore.exceptions import IdentifierSpaceExhaustedError
from shortcore.dao.base import BlockAuthorityBaseDAO
from shortcore.dao.exceptions import BlockReservationError
from shortcore.dao.redis.mixins import RedisClientMixin
from shortcore.dao.redis.helpers import handle_redis_connection_error


logger = logging.getLogger(__name__)


class BlockAuthorityRedisDAO(RedisClientMixin, BlockAuthorityBaseDAO):
    """Identifier block authority backed by an atomic Redis counter"""

    @handle_redis_connection_error
    @beartype
    def reserve_block(self, node_id: int, size: int) -> tuple[int, int]:
        """Reserve `size` consecutive identifiers for `node_id`

        Returns:
            tuple[int, int]: inclusive (start, end) range.

        Raises:
            ValueError:
                If node_id is negative or size is not positive.
            IdentifierSpaceExhaustedError:
                If the range would cross 2**64 - 1.
            DataStoreError:
                If Redis connectivity issues occur.
        """
        self._validate_request(node_id, size)

        # NOTE: Redis integers are signed 64-bit, so the counter itself caps the
        #       usable space at 2**63 - 1 and INCRBY errors out beyond it.
        try:
            end = int(self.redis.incrby(self.keys.identifier_counter_key(), size))
        except redis.exceptions.ResponseError as e:
            if 'overflow' in str(e):
                raise IdentifierSpaceExhaustedError('Identifier counter overflowed the Redis integer range.') from e
            raise BlockReservationError(f'Redis rejected the block reservation: {e}') from e
        start, end = self._checked_block(end, size)

        # Informational only: the counter alone guarantees exactly-once issuance
        self.redis.hset(self.keys.identifier_blocks_key(), f'{start}-{end}', f'{node_id}:{int(time.time())}')
        logger.info('Reserved identifier block.', extra={'nodeId': node_id, 'start': start, 'end': end})
        return start, end
