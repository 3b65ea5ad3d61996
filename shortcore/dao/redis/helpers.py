import functools
import redis
from typing import TypeVar, Any
from collections.abc import Callable

from shortcore.dao.exceptions import DataStoreError, DataStoreTimeoutError


__all__ = []

F = TypeVar('F', bound=Callable[..., Any])


def _describe(client: redis.Redis) -> str:
    info = client.connection_pool.connection_kwargs
    return f"{info.get('host')}:{info.get('port')}/{info.get('db')}"


def handle_redis_connection_error[F](method: F) -> F:
    """Wrap Redis-interacting DAO methods to handle connection errors

    A timeout is reported separately from other connectivity issues because
    the outcome of a timed out write is unknown to the caller.

    Args:
        method (Callable[..., Any]):
            DAO method performing Redis operations which may raise
            redis.exceptions.ConnectionError or redis.exceptions.TimeoutError.

    Returns:
        Callable[..., Any]:
            Wrapped method which raises DataStoreTimeoutError on timeouts and
            DataStoreError on connectivity issues with Redis.

    Example:
        >>> @handle_redis_connection_error
        ... def get_count(self):
        ...     return self.redis.get('count')
    """

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except redis.exceptions.TimeoutError as e:
            raise DataStoreTimeoutError(f'Timed out talking to Redis at {_describe(self.redis)}.') from e
        except redis.exceptions.ConnectionError as e:
            raise DataStoreError(f"Can't connect to Redis at {_describe(self.redis)}.") from e

    return wrapper
