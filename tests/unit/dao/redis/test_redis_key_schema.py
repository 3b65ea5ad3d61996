"""Unit tests for RedisKeySchema

Test coverage includes:
    1. Key generation with and without a prefix
    2. Reverse index keys are fixed-size digests
    3. Invalid prefixes
"""

import pytest
import xxhash

from shortcore.dao.redis import RedisKeySchema


@pytest.fixture
def schema():
    return RedisKeySchema(prefix='shortcore:test')


def test_mapping_keys(schema):
    assert schema.mapping_key('aaaaacb') == 'shortcore:test:mappings:aaaaacb'
    assert schema.mapping_pattern() == 'shortcore:test:mappings:*'
    assert schema.key_from_mapping_key('shortcore:test:mappings:aaaaacb') == 'aaaaacb'


def test_identifier_keys(schema):
    assert schema.identifier_counter_key() == 'shortcore:test:identifiers:counter'
    assert schema.identifier_blocks_key() == 'shortcore:test:identifiers:blocks'


def test_target_index_key(schema):
    target = 'https://example.com/' + 'x' * 2000
    expected = f'shortcore:test:targets:{xxhash.xxh64_hexdigest(target)}'

    assert schema.target_index_key(target) == expected
    assert schema.target_index_key(target) != schema.target_index_key('https://example.com/')


def test_keys_without_prefix():
    schema = RedisKeySchema()

    assert schema.mapping_key('promo') == 'mappings:promo'
    assert schema.key_from_mapping_key('mappings:promo') == 'promo'
    assert schema.identifier_counter_key() == 'identifiers:counter'


def test_invalid_prefix():
    with pytest.raises(TypeError, match='Prefix must be of type string'):
        RedisKeySchema(prefix=42)
