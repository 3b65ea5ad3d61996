"""Unit tests for UrlMapping and WriteResult

Test coverage includes:

1. Expiry
   - Mappings without expires_at never expire.
   - is_expired() and ttl() follow the (frozen) clock.

2. Persisted layout
   - to_record() / from_record() produce and read the shard record.

3. Immutability and write results
"""

import dataclasses
from datetime import datetime, timedelta, UTC

import pytest
from freezegun import freeze_time

from shortcore.models import UrlMapping, WriteResult, WriteStatus


# -------------------------------
# 1. Expiry
# -------------------------------


def test_mapping_without_expiry_never_expires():
    mapping = UrlMapping(key='aaaaacb', target='https://example.com')

    assert not mapping.is_expired(datetime(2999, 1, 1, tzinfo=UTC))
    assert mapping.ttl() is None


@freeze_time('2026-10-18 12:00:00')
def test_mapping_expiry_and_ttl():
    mapping = UrlMapping(
        key='aaaaacb',
        target='https://example.com',
        expires_at=datetime(2026, 10, 18, 12, 0, 30, tzinfo=UTC),
    )

    assert mapping.created_at == datetime(2026, 10, 18, 12, 0, tzinfo=UTC)
    assert not mapping.is_expired()
    assert mapping.ttl() == 30.0
    assert mapping.is_expired(mapping.expires_at)
    assert mapping.ttl(mapping.expires_at + timedelta(seconds=5)) == 0.0


# -------------------------------
# 2. Persisted layout
# -------------------------------


def test_to_record():
    mapping = UrlMapping(
        key='promo',
        target='https://example.com/spring-sale',
        created_at=datetime(2026, 10, 18, 12, 0, tzinfo=UTC),
        expires_at=datetime(2026, 11, 18, 12, 0, tzinfo=UTC),
        alias=True,
    )

    assert mapping.to_record() == {
        'target': 'https://example.com/spring-sale',
        'created_at': '2026-10-18T12:00:00+00:00',
        'expires_at': '2026-11-18T12:00:00+00:00',
        'alias': True,
    }


def test_from_record_inverts_to_record():
    mapping = UrlMapping(key='aaaaacb', target='https://example.com', created_at=datetime(2026, 10, 18, tzinfo=UTC))
    assert UrlMapping.from_record('aaaaacb', mapping.to_record()) == mapping


def test_from_record_defaults():
    record = {'target': 'https://example.com', 'created_at': '2026-10-18T12:00:00+00:00'}
    mapping = UrlMapping.from_record('aaaaacb', record)

    assert mapping.expires_at is None
    assert mapping.alias is False


# -------------------------------
# 3. Immutability and write results
# -------------------------------


def test_mapping_is_immutable():
    mapping = UrlMapping(key='aaaaacb', target='https://example.com')
    with pytest.raises(dataclasses.FrozenInstanceError):
        mapping.target = 'https://evil.example.com'


def test_write_results():
    mapping = UrlMapping(key='aaaaacb', target='https://example.com')

    created = WriteResult.created_with(mapping)
    existing = WriteResult.existing(mapping)

    assert created.created and created.status is WriteStatus.CREATED
    assert not existing.created and existing.status is WriteStatus.ALREADY_EXISTS
    assert existing.mapping is mapping
