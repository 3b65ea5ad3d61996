"""Unit tests for MappingRedisDAO

Test coverage includes:

1. Conditional writes
   - insert() runs the registered Lua script with the mapping and index keys.
   - Expiry is passed as unix milliseconds (0 = never).
   - A record returned by the script means ALREADY_EXISTS with that record.
   - Connection errors and timeouts map to DataStoreError / DataStoreTimeoutError.

2. Reads
   - get() parses the record, missing or expired records raise MappingNotFoundError.
   - keys_for_target() filters digest collisions and prunes stale index entries.
   - scan() pages through SCAN results.

3. Removal
   - delete() removes the record and its index entry in one transaction.
   - purge_expired() is a no-op.
"""

import json
from datetime import datetime, timedelta, UTC

import pytest
import redis
from beartype.roar import BeartypeCallHintParamViolation
from freezegun import freeze_time

from shortcore.dao.exceptions import DataStoreError, DataStoreTimeoutError, MappingNotFoundError
from shortcore.dao.redis import MappingRedisDAO, RedisKeySchema
from shortcore.dao.redis.mapping_redis_dao import INSERT_IF_ABSENT_SCRIPT
from shortcore.models import UrlMapping, WriteStatus


CREATED_AT = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)


def record(target, expires_at=None, alias=False):
    return json.dumps(UrlMapping(key='ignored', target=target, created_at=CREATED_AT, expires_at=expires_at, alias=alias).to_record())


# -------------------------------
# Fixtures
# -------------------------------


@pytest.fixture
def keys(app_prefix):
    return RedisKeySchema(prefix=app_prefix)


@pytest.fixture
def dao(redis_client, app_prefix):
    return MappingRedisDAO(redis_client=redis_client, prefix=app_prefix)


@pytest.fixture
def mapping():
    return UrlMapping(key='aaaaacb', target='https://example.com/page', created_at=CREATED_AT)


# -------------------------------
# 1. Conditional writes
# -------------------------------


def test_script_is_registered(dao, redis_client):
    redis_client.register_script.assert_called_once_with(INSERT_IF_ABSENT_SCRIPT)
    redis_client.ping.assert_called_once()


def test_insert_new_mapping(dao, mapping, keys, insert_script):
    result = dao.insert(mapping)

    assert result.status is WriteStatus.CREATED
    assert result.mapping is mapping
    insert_script.assert_called_once_with(
        keys=['testapp:test:mappings:aaaaacb', keys.target_index_key('https://example.com/page')],
        args=[json.dumps(mapping.to_record()), 0, 'aaaaacb'],
    )


def test_insert_with_expiry(dao, insert_script):
    expires_at = datetime(2026, 10, 18, 12, 0, 1, 500, tzinfo=UTC)
    dao.put_if_absent('aaaaacb', 'https://example.com', expires_at=expires_at)

    args = insert_script.call_args.kwargs['args']
    assert args[1] == int(datetime(2026, 10, 18, 12, 0, 1, tzinfo=UTC).timestamp() * 1000) + 1
    assert json.loads(args[0])['expires_at'] == expires_at.isoformat()


def test_insert_existing_key_returns_winner(dao, mapping, insert_script):
    insert_script.return_value = record('https://example.com/winner', alias=True)

    result = dao.insert(mapping)

    assert result.status is WriteStatus.ALREADY_EXISTS
    assert result.mapping == UrlMapping(key='aaaaacb', target='https://example.com/winner', created_at=CREATED_AT, alias=True)


def test_insert_connection_error(dao, mapping, insert_script):
    insert_script.side_effect = redis.exceptions.ConnectionError('refused')

    with pytest.raises(DataStoreError, match="Can't connect to Redis at redis.test:6379/0."):
        dao.insert(mapping)


def test_insert_timeout(dao, mapping, insert_script):
    insert_script.side_effect = redis.exceptions.TimeoutError('timed out')

    with pytest.raises(DataStoreTimeoutError):
        dao.insert(mapping)


def test_insert_invalid_type(dao):
    with pytest.raises((TypeError, BeartypeCallHintParamViolation)):
        dao.insert({'key': 'aaaaacb'})


# -------------------------------
# 2. Reads
# -------------------------------


def test_get(dao, redis_client):
    redis_client.get.return_value = record('https://example.com/page')

    mapping = dao.get('aaaaacb')

    assert mapping == UrlMapping(key='aaaaacb', target='https://example.com/page', created_at=CREATED_AT)
    redis_client.get.assert_called_once_with('testapp:test:mappings:aaaaacb')


def test_get_missing_key(dao):
    with pytest.raises(MappingNotFoundError, match="Mapping with key 'aaaaacb' not found."):
        dao.get('aaaaacb')


@freeze_time('2026-10-18 13:00:00')
def test_get_expired_record(dao, redis_client):
    redis_client.get.return_value = record('https://example.com', expires_at=CREATED_AT + timedelta(minutes=30))

    with pytest.raises(MappingNotFoundError, match='has expired'):
        dao.get('aaaaacb')


def test_get_connection_error(dao, redis_client):
    redis_client.get.side_effect = redis.exceptions.ConnectionError('refused')

    with pytest.raises(DataStoreError):
        dao.get('aaaaacb')


def test_keys_for_target(dao, redis_client, keys):
    target = 'https://example.com/page'
    redis_client.smembers.return_value = {'ccc', 'aaa', 'bbb'}
    redis_client.mget.return_value = [record(target), None, record('https://example.com/collision')]

    assert dao.keys_for_target(target) == ['aaa']
    redis_client.mget.assert_called_once_with(['testapp:test:mappings:aaa', 'testapp:test:mappings:bbb', 'testapp:test:mappings:ccc'])
    redis_client.srem.assert_called_once_with(keys.target_index_key(target), 'bbb')


def test_keys_for_unknown_target(dao, redis_client):
    redis_client.smembers.return_value = set()

    assert dao.keys_for_target('https://example.com') == []
    redis_client.mget.assert_not_called()


def test_scan_pages(dao, redis_client):
    redis_client.scan.side_effect = [
        (17, ['testapp:test:mappings:aaa', 'testapp:test:mappings:bbb']),
        (0, ['testapp:test:mappings:ccc']),
    ]
    redis_client.mget.side_effect = [
        [record('https://example.com/a'), None],
        [record('https://example.com/c')],
    ]

    mappings = list(dao.scan())

    assert [(m.key, m.target) for m in mappings] == [('aaa', 'https://example.com/a'), ('ccc', 'https://example.com/c')]
    assert redis_client.scan.call_args_list[1].kwargs == {'cursor': 17, 'match': 'testapp:test:mappings:*', 'count': 500}


def test_scan_connection_error(dao, redis_client):
    redis_client.scan.side_effect = redis.exceptions.ConnectionError('refused')

    with pytest.raises(DataStoreError):
        list(dao.scan())


# -------------------------------
# 3. Removal
# -------------------------------


def test_delete(dao, redis_client, keys):
    redis_client.get.return_value = record('https://example.com/page')
    redis_client.execute.return_value = [1, 1]

    assert dao.delete('aaaaacb') is True
    redis_client.pipeline.assert_called_once_with(transaction=True)
    redis_client.delete.assert_called_once_with('testapp:test:mappings:aaaaacb')
    redis_client.srem.assert_called_once_with(keys.target_index_key('https://example.com/page'), 'aaaaacb')


def test_delete_missing_key(dao, redis_client):
    assert dao.delete('aaaaacb') is False
    redis_client.pipeline.assert_not_called()


def test_purge_expired_is_noop(dao, redis_client):
    assert dao.purge_expired() == 0
    redis_client.scan.assert_not_called()
