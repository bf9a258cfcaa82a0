from unittest.mock import MagicMock

import pytest
import redis
from pytest import MonkeyPatch

from linkshortener.dao.exceptions import DataStoreError
from linkshortener.dao.redis import RedisKeySchema
from linkshortener.dao.redis.mixins import RedisClientMixin


class TestRedisClientMixin:
    @pytest.fixture
    def unhealthy_redis_client(self, redis_client: redis.Redis) -> redis.Redis:
        redis_client.ping.side_effect = redis.exceptions.ConnectionError('Connection error')
        return redis_client

    def test_healthcheck_passes_with_healthy_redis(self, redis_client: redis.Redis):
        mixin = RedisClientMixin(redis_client=redis_client, prefix='testapp:test')

        redis_client.ping.assert_called_once()  # initialization performs a healthcheck
        assert mixin.redis is redis_client
        assert isinstance(mixin.keys, RedisKeySchema)
        assert mixin.keys.prefix == 'testapp:test'

    def test_healthcheck_fails_with_unhealthy_redis(self, unhealthy_redis_client: redis.Redis):
        with pytest.raises(DataStoreError, match='redis.test:6379/0'):
            RedisClientMixin(redis_client=unhealthy_redis_client, prefix='testapp:test')

    def test_healthcheck_without_raising(self, redis_client: redis.Redis):
        mixin = RedisClientMixin(redis_client=redis_client)
        redis_client.ping.side_effect = redis.exceptions.ConnectionError('Connection error')

        assert mixin._heatlhcheck(raise_error=False) is False

    def test_client_is_built_from_connection_parameters(self, monkeypatch: MonkeyPatch, redis_client: redis.Redis):
        factory = MagicMock(return_value=redis_client)
        monkeypatch.setattr(redis, 'Redis', factory)

        RedisClientMixin(redis_host='cache.internal', redis_port='6380', redis_db='2', redis_password='secret', redis_ssl=True)

        factory.assert_called_once_with(
            host='cache.internal',
            port=6380,
            db=2,
            decode_responses=True,
            username=None,
            password='secret',
            ssl=True,
            socket_timeout=None,
        )

    def test_client_is_built_from_url(self, monkeypatch: MonkeyPatch, redis_client: redis.Redis):
        from_url = MagicMock(return_value=redis_client)
        monkeypatch.setattr(redis.Redis, 'from_url', from_url)

        mixin = RedisClientMixin(redis_url='rediss://cache.internal:6380/1', redis_host='ignored', redis_socket_timeout=0.5)

        from_url.assert_called_once_with('rediss://cache.internal:6380/1', decode_responses=True, socket_timeout=0.5)
        assert mixin.redis is redis_client

    def test_healthcheck_timeout_is_a_connectivity_failure(self, redis_client: redis.Redis):
        redis_client.ping.side_effect = redis.exceptions.TimeoutError('Timeout reading from socket')

        with pytest.raises(DataStoreError, match='Check the backends.redis configuration'):
            RedisClientMixin(redis_client=redis_client)
