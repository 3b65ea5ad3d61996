"""Redis client setup shared by the shard and authority DAOs

Every Redis-backed DAO talks to exactly one Redis node: a mapping shard
(`MappingRedisDAO`) or the identifier block authority
(`BlockAuthorityRedisDAO`). The mixin connects to that node, namespaces its
keys and refuses to build a DAO for a node that does not answer PING.

Example:
    >>> class MappingRedisDAO(RedisClientMixin, MappingBaseDAO):
    ...     pass
    ...
    >>> dao = MappingRedisDAO(redis_db=1, prefix='shortcore:prod')
    >>> dao.node
    'localhost:6379/1'
    >>> dao._healthcheck()
    True
"""

from typing import Optional

import redis

from shortcore.dao.redis.redis_key_schema import RedisKeySchema
from shortcore.dao.exceptions import DataStoreError


class RedisClientMixin:
    """Connect a DAO to one Redis node

    Attributes:
        redis (redis.Redis):
            Client of the node backing this DAO.
        keys (RedisKeySchema):
            Key names under the DAO's namespace prefix.
    """

    def __init__(
        self,
        redis_host: Optional[str] = 'localhost',
        redis_port: Optional[int] = 6379,
        redis_db: Optional[int] = 0,
        redis_decode_responses: Optional[bool] = True,
        redis_username: Optional[str] = None,
        redis_password: Optional[str] = None,
        redis_socket_timeout: Optional[float] = None,
        redis_client: Optional[redis.Redis] = None,
        prefix: Optional[str] = None,
    ):
        """Connect to a shard or authority node, or adopt an existing client

        Args:
            redis_host, redis_port, redis_db (Optional):
                Address of the node. Ports and db indexes may be given as strings,
                as they are when read from the environment.
            redis_decode_responses (Optional[bool]):
                Decode replies to str. Defaults to True.
            redis_username, redis_password (Optional[str]):
                ACL credentials, if the node requires them.
            redis_socket_timeout (Optional[float]):
                Per-command timeout in seconds. Commands that exceed it raise
                DataStoreTimeoutError, whose write outcome is unknown. None waits forever.
            redis_client (Optional[redis.Redis]):
                Client to adopt instead of connecting. The address arguments are then ignored.
            prefix (Optional[str]):
                Key namespace, e.g. 'shortcore:prod'.

        Raises:
            DataStoreError:
                If the node does not answer PING.
        """
        if redis_client is None:
            redis_client = redis.Redis(
                host=redis_host,
                port=int(redis_port),
                db=int(redis_db),
                decode_responses=redis_decode_responses,
                username=redis_username,
                password=redis_password,
                socket_timeout=redis_socket_timeout,
            )
        self.redis = redis_client
        self.keys = RedisKeySchema(prefix=prefix)

        self._healthcheck()

    @property
    def node(self) -> str:
        """'host:port/db' of the node behind this DAO"""
        info = self.redis.connection_pool.connection_kwargs
        return f"{info.get('host')}:{info.get('port')}/{info.get('db')}"

    def _healthcheck(self, raise_error: bool = True) -> bool:
        """PING the node

        Returns:
            bool: True if the node answered, False if it did not and raise_error is False.

        Raises:
            DataStoreError:
                If the node did not answer and raise_error is True.
        """
        try:
            self.redis.ping()
        except (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError) as e:
            if raise_error:
                raise DataStoreError(
                    f"Can't reach Redis node {self.node} (key prefix: {self.keys.prefix!r}). Check the shard and authority connection settings."
                ) from e
            return False
        return True
