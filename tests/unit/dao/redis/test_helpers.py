"""Unit tests for handle_redis_connection_error decorator.

Test coverage includes:
    1. Normal function execution
    2. Connection errors become DataStoreError
    3. Timeouts become DataStoreTimeoutError (outcome unknown)
    4. Function metadata preservation
"""

from unittest.mock import MagicMock

import pytest
import redis

from shortcore.dao.exceptions import DataStoreError, DataStoreTimeoutError
from shortcore.dao.redis.helpers import handle_redis_connection_error


class DummyDAO:
    def __init__(self, error=None):
        self.redis = MagicMock()
        self.redis.connection_pool.connection_kwargs = {'host': 'redis.test', 'port': 6379, 'db': 0}
        self.error = error

    @handle_redis_connection_error
    def ping(self):
        """Ping Redis."""
        if self.error is not None:
            raise self.error
        return 'OK'


def test_decorator_allows_normal_execution():
    assert DummyDAO().ping() == 'OK'


def test_decorator_transforms_connection_error():
    dao = DummyDAO(redis.exceptions.ConnectionError('refused'))

    with pytest.raises(DataStoreError, match="Can't connect to Redis at redis.test:6379/0.") as exc_info:
        dao.ping()
    assert not isinstance(exc_info.value, DataStoreTimeoutError)


def test_decorator_transforms_timeout():
    dao = DummyDAO(redis.exceptions.TimeoutError('timed out'))

    with pytest.raises(DataStoreTimeoutError, match='Timed out talking to Redis at redis.test:6379/0.'):
        dao.ping()


def test_decorator_lets_other_errors_through():
    dao = DummyDAO(ValueError('bad'))

    with pytest.raises(ValueError, match='bad'):
        dao.ping()


def test_decorator_preserves_metadata():
    assert DummyDAO.ping.__name__ == 'ping'
    assert DummyDAO.ping.__doc__ == 'Ping Redis.'
