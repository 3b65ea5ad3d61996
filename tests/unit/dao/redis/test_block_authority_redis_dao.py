"""Unit tests for BlockAuthorityRedisDAO

Test coverage includes:
    1. Blocks come from an atomic INCRBY and are recorded for observability.
    2. Validation of node ids and sizes.
    3. Counter overflow and Redis failures.
"""

import pytest
import redis
from freezegun import freeze_time

from shortcore.dao.exceptions import BlockReservationError, DataStoreError
from shortcore.dao.redis import BlockAuthorityRedisDAO
from shortcore.exceptions import IdentifierSpaceExhaustedError


@pytest.fixture
def authority(redis_client, app_prefix):
    return BlockAuthorityRedisDAO(redis_client=redis_client, prefix=app_prefix)


@freeze_time('2026-10-18 12:00:00')
def test_reserve_block(authority, redis_client):
    redis_client.incrby.return_value = 2000

    assert authority.reserve_block(node_id=3, size=1000) == (1001, 2000)
    redis_client.incrby.assert_called_once_with('testapp:test:identifiers:counter', 1000)
    redis_client.hset.assert_called_once_with('testapp:test:identifiers:blocks', '1001-2000', '3:1792324800')


@pytest.mark.parametrize('node_id, size', [(-1, 10), (1, 0)])
def test_invalid_requests(authority, redis_client, node_id, size):
    with pytest.raises(ValueError):
        authority.reserve_block(node_id=node_id, size=size)
    redis_client.incrby.assert_not_called()


def test_counter_overflow(authority, redis_client):
    redis_client.incrby.side_effect = redis.exceptions.ResponseError('increment or decrement would overflow')

    with pytest.raises(IdentifierSpaceExhaustedError):
        authority.reserve_block(node_id=1, size=1000)


def test_block_beyond_identifier_space(authority, redis_client):
    redis_client.incrby.return_value = 2**64

    with pytest.raises(IdentifierSpaceExhaustedError):
        authority.reserve_block(node_id=1, size=1000)
    redis_client.hset.assert_not_called()


def test_other_response_errors(authority, redis_client):
    redis_client.incrby.side_effect = redis.exceptions.ResponseError('WRONGTYPE Operation against a key holding the wrong kind of value')

    with pytest.raises(BlockReservationError, match='WRONGTYPE'):
        authority.reserve_block(node_id=1, size=1000)


def test_connection_error(authority, redis_client):
    redis_client.incrby.side_effect = redis.exceptions.ConnectionError('refused')

    with pytest.raises(DataStoreError, match="Can't connect to Redis"):
        authority.reserve_block(node_id=1, size=1000)
