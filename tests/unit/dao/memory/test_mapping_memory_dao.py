"""Unit tests for MappingMemoryDAO

Test coverage includes:

1. Conditional writes
   - First writer wins; the loser sees the winning mapping.
   - Concurrent writers of one key: exactly one CREATED.
   - Expired mappings count as absent.

2. Reads
   - get() raises MappingNotFoundError for missing and expired keys.
   - keys_for_target() and scan() only return live mappings, scan() in key order.

3. Removal
   - delete() and purge_expired().
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, UTC

import pytest
from beartype.roar import BeartypeCallHintParamViolation

from shortcore.dao.exceptions import MappingNotFoundError
from shortcore.dao.memory import MappingMemoryDAO
from shortcore.exceptions import KeyNotFoundError
from shortcore.models import UrlMapping, WriteStatus


NOW = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


# -------------------------------
# Fixtures
# -------------------------------


@pytest.fixture
def clock():
    return FakeClock(NOW)


@pytest.fixture
def dao(clock):
    return MappingMemoryDAO(clock=clock)


# -------------------------------
# 1. Conditional writes
# -------------------------------


def test_first_writer_wins(dao):
    first = dao.put_if_absent('aaaaacb', 'https://example.com/a')
    second = dao.put_if_absent('aaaaacb', 'https://example.com/b')

    assert first.status is WriteStatus.CREATED
    assert second.status is WriteStatus.ALREADY_EXISTS
    assert second.mapping == first.mapping
    assert dao.get('aaaaacb').target == 'https://example.com/a'


def test_put_alias_marks_record(dao):
    result = dao.put_alias('promo', 'https://example.com/sale')

    assert result.created
    assert dao.get('promo').alias is True


def test_concurrent_writers_of_one_key(dao):
    targets = [f'https://example.com/{i}' for i in range(32)]

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(lambda target: dao.put_if_absent('aaaaacb', target), targets))

    winners = [result for result in results if result.created]
    assert len(winners) == 1
    assert all(result.mapping == winners[0].mapping for result in results)
    assert dao.get('aaaaacb').target == winners[0].mapping.target


def test_expired_mapping_counts_as_absent(dao, clock):
    dao.put_if_absent('aaaaacb', 'https://example.com/old', expires_at=NOW + timedelta(seconds=1))
    clock.advance(2)

    result = dao.put_if_absent('aaaaacb', 'https://example.com/new')

    assert result.created
    assert dao.get('aaaaacb').target == 'https://example.com/new'
    assert dao.keys_for_target('https://example.com/old') == []


def test_insert_invalid_type(dao):
    with pytest.raises((TypeError, BeartypeCallHintParamViolation)):
        dao.insert('https://example.com/notamapping')


# -------------------------------
# 2. Reads
# -------------------------------


def test_get_missing_key(dao):
    with pytest.raises(MappingNotFoundError, match="Mapping with key 'missing' not found."):
        dao.get('missing')


def test_get_expired_key(dao, clock):
    dao.put_if_absent('aaaaacb', 'https://example.com', expires_at=NOW + timedelta(seconds=1))
    assert dao.get('aaaaacb').target == 'https://example.com'

    clock.advance(2)
    with pytest.raises(KeyNotFoundError):
        dao.get('aaaaacb')
    assert len(dao) == 0


def test_keys_for_target(dao, clock):
    dao.put_if_absent('aaaaacc', 'https://example.com')
    dao.put_alias('promo', 'https://example.com')
    dao.put_if_absent('aaaaacb', 'https://example.com', expires_at=NOW + timedelta(seconds=1))
    dao.put_if_absent('aaaaacd', 'https://example.com/other')

    assert dao.keys_for_target('https://example.com') == ['aaaaacb', 'aaaaacc', 'promo']
    clock.advance(2)
    assert dao.keys_for_target('https://example.com') == ['aaaaacc', 'promo']
    assert dao.keys_for_target('https://nowhere.example.com') == []


def test_scan_is_ordered_and_skips_expired(dao, clock):
    for key in ('zz', 'aa', 'mm'):
        dao.put_if_absent(key, f'https://example.com/{key}')
    dao.put_if_absent('bb', 'https://example.com/bb', expires_at=NOW + timedelta(seconds=1))
    clock.advance(2)

    assert [mapping.key for mapping in dao.scan()] == ['aa', 'mm', 'zz']


# -------------------------------
# 3. Removal
# -------------------------------


def test_delete(dao):
    dao.put_if_absent('aaaaacb', 'https://example.com')

    assert dao.delete('aaaaacb') is True
    assert dao.delete('aaaaacb') is False
    assert dao.keys_for_target('https://example.com') == []
    with pytest.raises(MappingNotFoundError):
        dao.get('aaaaacb')


def test_purge_expired(dao, clock):
    dao.put_if_absent('aaaaacb', 'https://example.com/a', expires_at=NOW + timedelta(seconds=1))
    dao.put_if_absent('aaaaacc', 'https://example.com/b', expires_at=NOW + timedelta(hours=1))
    dao.put_if_absent('aaaaacd', 'https://example.com/c')

    assert dao.purge_expired() == 0
    clock.advance(2)
    assert dao.purge_expired() == 1
    assert [mapping.key for mapping in dao.scan()] == ['aaaaacc', 'aaaaacd']
    assert dao.purge_expired(now=NOW + timedelta(days=1)) == 1
    assert len(dao) == 1
