import functools
import redis
from typing import TypeVar, Any
from collections.abc import Callable

from linkshortener.dao.exceptions import DataStoreError


__all__ = []

F = TypeVar('F', bound=Callable[..., Any])

REDIS_CONNECTIVITY_ERRORS = (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError)


def redis_endpoint(client: redis.Redis) -> str:
    """Describe the server a client talks to as `host:port/db`"""
    info = client.connection_pool.connection_kwargs
    return f'{info.get("host")}:{info.get("port")}/{info.get("db")}'


def handle_redis_connection_error[F](method: F) -> F:
    """Translate Redis connectivity failures of a DAO method into DataStoreError

    Socket timeouts count as connectivity failures: a store call either
    completes or fails within the client's timeout. Any other Redis error
    (e.g. WRONGTYPE) is a programming error and propagates unchanged.

    Example:
        >>> @handle_redis_connection_error
        ... def exists(self, shortcode):
        ...     return self.redis.exists(self.keys.link_key(shortcode))
    """

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except REDIS_CONNECTIVITY_ERRORS as e:
            raise DataStoreError(f"Can't connect to Redis at {redis_endpoint(self.redis)}. Operation '{method.__name__}' failed.") from e

    return wrapper
