"""Data Access Object (DAO) implementation for managing shortened URLs in Redis

This module provides a Redis-based implementation of ShortURLBaseDAO for CRUD-like
operations with ShortURLModel instances.

Responsibilities:
    - Insert and retrieve short URLs from Redis;
    - Guarantee short code uniqueness with optimistic (WATCH/MULTI) transactions;
    - Enforce ownership on update and delete;
    - Record clicks into a bounded click history;
    - Maintain per-owner and expiry indexes for listing, migration and cleanup;
    - Provide defensive error handling and raise appropriate DAO exceptions.

Classes:
    ShortURLRedisDAO:
        DAO for storing and retrieving ShortURLModel in a Redis datastore.

Example:
    >>> from linkshortener.models import ShortURLModel
    >>> from linkshortener.dao.redis import ShortURLRedisDAO

    >>> dao = ShortURLRedisDAO(prefix="app:dev")

    >>> short_url = ShortURLModel(
    ...     target="https://example.com/page",
    ...     shortcode="abc123"
    ... )
    >>> dao.insert(short_url)
    <ShortURLRedisDAO>

    >>> retrieved = dao.get("abc123")
    >>> retrieved.target
    'https://example.com/page'
    >>> dao.hit("abc123", ClickModel(timestamp=datetime.now(UTC)))
    1
"""

import json
from datetime import datetime
from typing import Any, Optional

from beartype import beartype

from linkshortener.models import ClickModel, OwnerKind, ShortURLModel
from linkshortener.dao.base import ShortURLBaseDAO
from linkshortener.dao.redis.mixins import RedisClientMixin
from linkshortener.dao.redis.helpers import handle_redis_connection_error
from linkshortener.dao.exceptions import ShortURLAlreadyExistsError, ShortURLNotFoundError, ShortURLOwnershipError
from linkshortener.utils.helpers import to_timestamp


def _dump_datetime(value: Optional[datetime]) -> str:
    return '' if value is None else value.isoformat()


def _load_datetime(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _dump_click(click: ClickModel) -> str:
    # fmt: off
    return json.dumps({
        'timestamp': click.timestamp.isoformat(),
        'ip': click.ip,
        'user_agent': click.user_agent,
        'referer': click.referer,
    })
    # fmt: on


def _load_click(raw: str) -> ClickModel:
    data = json.loads(raw)
    return ClickModel(
        timestamp=datetime.fromisoformat(data['timestamp']),
        ip=data.get('ip'),
        user_agent=data.get('user_agent'),
        referer=data.get('referer'),
    )


class ShortURLRedisDAO(RedisClientMixin, ShortURLBaseDAO):
    """Redis-based Data Access Object (DAO) for managing short URL records

    This class implements the ShortURLBaseDAO interface using Redis as a data store.

    Each record is a hash under `links:<shortcode>`; see RedisKeySchema for the
    full key layout. Every mutation WATCHes the record key, reads it, and
    queues its writes in a MULTI block. If the key changes in between, Redis
    aborts the EXEC and redis-py retries the whole read-check-write cycle, so
    two concurrent inserts of the same code can never both succeed, and a
    click can never recreate a concurrently deleted record.

    Attributes (see RedisClientMixin):
        redis (redis.Redis):
            Redis client used to communicate with the Redis datastore.
        keys (RedisKeySchema):
            Key schema helper for generating namespaced Redis keys.

    Example:
        >>> dao = ShortURLRedisDAO(redis_host="localhost", prefix="linkshortener:test")
        >>> dao.insert(ShortURLModel(target="https://example.com", shortcode="abc123"))
        <ShortURLRedisDAO>
        >>> dao.get("abc123").target
        'https://example.com'
    """

    @handle_redis_connection_error
    @beartype
    def insert(self, short_url: ShortURLModel, **kwargs) -> 'ShortURLRedisDAO':
        """Insert a short URL record into Redis

        The existence check and the writes run in one optimistic transaction
        watching the record key.

        Args:
            short_url (ShortURLModel):
                ShortURLModel instance representing the shortened URL mapping.
            **kwargs:
                Optional keyword arguments (for future use).

        Returns:
            ShortURLRedisDAO: self (for method chaining)

        Raises:
            ShortURLAlreadyExistsError:
                If a short URL with the same shortcode already exists.
            DataStoreError:
                If a Redis connection issue occurs during the transaction.
        """
        shortcode = short_url.shortcode
        link_key = self.keys.link_key(shortcode)

        def _insert(pipe) -> None:
            if pipe.exists(link_key):
                raise ShortURLAlreadyExistsError(f"Short URL with code '{shortcode}' already exists.")

            pipe.multi()
            pipe.hset(link_key, mapping=self._serialize(short_url))
            if short_url.owner_id is not None:
                score = to_timestamp(short_url.created_at) if short_url.created_at is not None else 0
                pipe.zadd(self.keys.owner_links_key(short_url.owner_kind, short_url.owner_id), {shortcode: score})
            if short_url.expires_at is not None:
                pipe.zadd(self.keys.expiry_index_key(), {shortcode: to_timestamp(short_url.expires_at)})

        self.redis.transaction(_insert, link_key)
        return self

    @handle_redis_connection_error
    @beartype
    def get(self, shortcode: str, **kwargs) -> ShortURLModel:
        """Retrieve a stored short URL record by shortcode

        Fetches the record hash and its click history in a single MULTI block.
        Expired and inactive records are returned as stored; deciding whether
        they resolve is up to the caller.

        Raises:
            ShortURLNotFoundError:
                If the short URL does not exist in Redis.
            DataStoreError:
                If Redis connectivity issues occur.

        Example:
            >>> dao.get('abc123')
            ShortURLModel(target='https://example.com', shortcode='abc123', ...)
        """
        with self.redis.pipeline(transaction=True) as pipe:
            pipe.hgetall(self.keys.link_key(shortcode))
            pipe.lrange(self.keys.link_clicks_key(shortcode), 0, -1)
            data, history = pipe.execute()

        if not data:
            raise ShortURLNotFoundError(f"Short URL with code '{shortcode}' not found.")

        return self._deserialize(data, history)

    @handle_redis_connection_error
    @beartype
    def exists(self, shortcode: str, **kwargs) -> bool:
        return bool(self.redis.exists(self.keys.link_key(shortcode)))

    @handle_redis_connection_error
    @beartype
    def update(self, shortcode: str, owner_id: str, **fields) -> ShortURLModel:
        """Apply changes to `target`, `is_active` and/or `expires_at` of an owned record

        Raises:
            ValueError:
                If a field outside MUTABLE_FIELDS is given.
            ShortURLNotFoundError:
                If the short URL does not exist in Redis.
            ShortURLOwnershipError:
                If the record belongs to somebody else.
            DataStoreError:
                If Redis connectivity issues occur.
        """
        self._check_fields(fields)
        link_key = self.keys.link_key(shortcode)
        expiry_key = self.keys.expiry_index_key()

        changes: dict[str, str] = {}
        if 'target' in fields:
            changes['target'] = fields['target']
        if 'is_active' in fields:
            changes['is_active'] = '1' if fields['is_active'] else '0'
        if 'expires_at' in fields:
            changes['expires_at'] = _dump_datetime(fields['expires_at'])

        def _update(pipe) -> dict[str, str]:
            data = pipe.hgetall(link_key)
            self._check_owner(shortcode, data, owner_id)

            pipe.multi()
            if changes:
                pipe.hset(link_key, mapping=changes)
            if 'expires_at' in fields:
                if fields['expires_at'] is None:
                    pipe.zrem(expiry_key, shortcode)
                else:
                    pipe.zadd(expiry_key, {shortcode: to_timestamp(fields['expires_at'])})
            return {**data, **changes}

        data = self.redis.transaction(_update, link_key, value_from_callable=True)
        return self._deserialize(data)

    @handle_redis_connection_error
    @beartype
    def delete(self, shortcode: str, owner_id: str, **kwargs) -> None:
        """Delete an owned record together with its click history and index entries

        Raises:
            ShortURLNotFoundError:
                If the short URL does not exist in Redis.
            ShortURLOwnershipError:
                If the record belongs to somebody else.
            DataStoreError:
                If Redis connectivity issues occur.
        """
        link_key = self.keys.link_key(shortcode)

        def _delete(pipe) -> None:
            data = pipe.hgetall(link_key)
            self._check_owner(shortcode, data, owner_id)

            pipe.multi()
            self._queue_removal(pipe, shortcode, data)

        self.redis.transaction(_delete, link_key)

    @handle_redis_connection_error
    @beartype
    def hit(self, shortcode: str, click: ClickModel, history_limit: int = 100, **kwargs) -> int:
        """Record a click on a short URL

        Increments the click counter, appends the click to the history and
        trims the history to its newest `history_limit` entries.

        NOTE: the record key is WATCHed, so a record deleted between the
              existence check and EXEC aborts the transaction instead of
              leaving behind an orphan `clicks` field.

        Returns:
            int:
                total clicks after this one.

        Raises:
            ShortURLNotFoundError:
                If no short URL with the given short code exists.
            DataStoreError:
                If Redis connectivity issues occur.

        Example:
            >>> dao.hit('abc123', ClickModel(timestamp=datetime.now(UTC)))
            42
        """
        link_key = self.keys.link_key(shortcode)
        clicks_key = self.keys.link_clicks_key(shortcode)

        def _hit(pipe) -> None:
            if not pipe.exists(link_key):
                raise ShortURLNotFoundError(f"Short URL with code '{shortcode}' not found.")

            pipe.multi()
            pipe.hincrby(link_key, 'clicks', 1)
            pipe.rpush(clicks_key, _dump_click(click))
            pipe.ltrim(clicks_key, -history_limit, -1)

        clicks, *_ = self.redis.transaction(_hit, link_key)
        return int(clicks)

    @handle_redis_connection_error
    @beartype
    def delete_expired(self, before: datetime, **kwargs) -> int:
        """Delete every record whose expiration is earlier than `before`

        Candidates come from the expiry index. Each one is re-checked inside
        its own transaction, so a record whose expiry was extended or cleared
        in the meantime survives.

        Returns:
            int: Number of deleted records.
        """
        expiry_key = self.keys.expiry_index_key()
        candidates = self.redis.zrangebyscore(expiry_key, '-inf', f'({to_timestamp(before)}')

        deleted = 0
        for shortcode in candidates:
            link_key = self.keys.link_key(shortcode)

            def _delete_if_expired(pipe, shortcode=shortcode, link_key=link_key) -> bool:
                data = pipe.hgetall(link_key)
                if not data:
                    pipe.multi()
                    pipe.zrem(expiry_key, shortcode)
                    return False

                expires_at = _load_datetime(data.get('expires_at'))
                if expires_at is None or expires_at >= before:
                    return False

                pipe.multi()
                self._queue_removal(pipe, shortcode, data)
                return True

            if self.redis.transaction(_delete_if_expired, link_key, value_from_callable=True):
                deleted += 1

        return deleted

    @handle_redis_connection_error
    @beartype
    def find(self, owner_kind: OwnerKind, owner_id: str, offset: int = 0, limit: int = 10, **kwargs) -> list[ShortURLModel]:
        """List an owner's records, newest first

        Click histories are not loaded. Records deleted between reading the
        owner index and reading the hashes are skipped.
        """
        if limit <= 0:
            return []

        shortcodes = self.redis.zrevrange(self.keys.owner_links_key(owner_kind, owner_id), offset, offset + limit - 1)
        if not shortcodes:
            return []

        with self.redis.pipeline(transaction=False) as pipe:
            for shortcode in shortcodes:
                pipe.hgetall(self.keys.link_key(shortcode))
            rows = pipe.execute()

        return [self._deserialize(data) for data in rows if data]

    @handle_redis_connection_error
    @beartype
    def count(self, owner_kind: OwnerKind, owner_id: str, **kwargs) -> int:
        return int(self.redis.zcard(self.keys.owner_links_key(owner_kind, owner_id)))

    @handle_redis_connection_error
    @beartype
    def transfer(
        self,
        from_kind: OwnerKind,
        from_id: str,
        to_kind: OwnerKind,
        to_id: str,
        clear_expiry: bool = True,
        **kwargs,
    ) -> list[str]:
        """Move every record owned by (from_kind, from_id) to (to_kind, to_id)

        Each record moves in its own transaction. Index entries pointing at
        records that vanished or changed owner are dropped.

        Returns:
            list[str]: Short codes of the moved records.
        """
        from_key = self.keys.owner_links_key(from_kind, from_id)
        to_key = self.keys.owner_links_key(to_kind, to_id)
        expiry_key = self.keys.expiry_index_key()

        moved = []
        for shortcode, score in self.redis.zrange(from_key, 0, -1, withscores=True):
            link_key = self.keys.link_key(shortcode)

            def _move(pipe, shortcode=shortcode, score=score, link_key=link_key) -> bool:
                data = pipe.hgetall(link_key)
                owned = data and data.get('owner_kind') == from_kind and data.get('owner_id') == from_id

                pipe.multi()
                pipe.zrem(from_key, shortcode)
                if not owned:
                    return False

                changes = {'owner_kind': str(to_kind), 'owner_id': to_id}
                if clear_expiry:
                    changes['expires_at'] = ''
                    pipe.zrem(expiry_key, shortcode)
                pipe.hset(link_key, mapping=changes)
                pipe.zadd(to_key, {shortcode: score})
                return True

            if self.redis.transaction(_move, link_key, value_from_callable=True):
                moved.append(shortcode)

        return moved

    def _queue_removal(self, pipe, shortcode: str, data: dict[str, str]) -> None:
        pipe.delete(self.keys.link_key(shortcode), self.keys.link_clicks_key(shortcode))
        pipe.zrem(self.keys.expiry_index_key(), shortcode)
        if data.get('owner_id'):
            pipe.zrem(self.keys.owner_links_key(data.get('owner_kind'), data['owner_id']), shortcode)

    @staticmethod
    def _check_owner(shortcode: str, data: dict[str, str], owner_id: str) -> None:
        if not data:
            raise ShortURLNotFoundError(f"Short URL with code '{shortcode}' not found.")
        if data.get('owner_id') != owner_id:
            raise ShortURLOwnershipError(f"Short URL with code '{shortcode}' is not owned by '{owner_id}'.")

    @staticmethod
    def _serialize(short_url: ShortURLModel) -> dict[str, Any]:
        return {
            'target': short_url.target,
            'shortcode': short_url.shortcode,
            'owner_kind': str(short_url.owner_kind),
            'owner_id': short_url.owner_id or '',
            'created_at': _dump_datetime(short_url.created_at),
            'expires_at': _dump_datetime(short_url.expires_at),
            'is_active': '1' if short_url.is_active else '0',
            'clicks': short_url.clicks,
            'custom': '1' if short_url.custom else '0',
        }

    @staticmethod
    def _deserialize(data: dict[str, str], history: Optional[list[str]] = None) -> ShortURLModel:
        return ShortURLModel(
            target=data['target'],
            shortcode=data['shortcode'],
            owner_kind=OwnerKind(data.get('owner_kind') or OwnerKind.NONE),
            owner_id=data.get('owner_id') or None,
            created_at=_load_datetime(data.get('created_at')),
            expires_at=_load_datetime(data.get('expires_at')),
            is_active=data.get('is_active', '1') == '1',
            clicks=int(data.get('clicks') or 0),
            click_history=tuple(_load_click(raw) for raw in history or ()),
            custom=data.get('custom', '0') == '1',
        )
