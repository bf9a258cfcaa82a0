import functools
from collections.abc import Callable


__all__ = ['RedisKeySchema']  # hide internal decorator prefix_key from imports


def prefix_key(func: Callable) -> Callable:
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs) -> str:
        key = func(self, *args, **kwargs)
        return f'{self.prefix}:{key}' if self.prefix is not None else key

    return wrapper


class RedisKeySchema:
    """Provide standardized Redis keys for storing short URLs.

    An optional prefix can be provided to namespace all generated keys.
    It is highly encouraged to set a custom prefix for each app and environment,
    e.g. "linkshortener:prod" or "linkshortener:dev".

    Layout:
        links:<shortcode>                HASH  record fields
        links:<shortcode>:clicks         LIST  JSON-encoded clicks, oldest first
        owners:<kind>:<owner id>:links   ZSET  owner's short codes scored by creation time
        links:expiry                     ZSET  expiring short codes scored by expiration time
    """

    def __init__(self, prefix: str | None = None):
        if prefix is not None and not isinstance(prefix, str):
            raise TypeError(f'Prefix must be of type string (given type: {type(prefix)}).')

        self.prefix = prefix

    @prefix_key
    def link_key(self, shortcode: str) -> str:
        return f'links:{shortcode}'

    @prefix_key
    def link_clicks_key(self, shortcode: str) -> str:
        return f'links:{shortcode}:clicks'

    @prefix_key
    def owner_links_key(self, owner_kind: str, owner_id: str) -> str:
        return f'owners:{owner_kind}:{owner_id}:links'

    @prefix_key
    def expiry_index_key(self) -> str:
        return 'links:expiry'
