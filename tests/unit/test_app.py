from unittest.mock import MagicMock

import pytest
import redis
from pytest import MonkeyPatch

from linkshortener import app
from linkshortener.app import LinkShortener, build_dao
from linkshortener.constants import ENV
from linkshortener.dao.memory import ShortURLMemoryDAO
from linkshortener.dao.redis import ShortURLRedisDAO
from linkshortener.exceptions import NotFoundError
from linkshortener.models import OwnerKind
from linkshortener.utils.config import Settings


def test_build_memory_dao():
    assert isinstance(build_dao(Settings()), ShortURLMemoryDAO)


def test_build_redis_dao(monkeypatch: MonkeyPatch):
    client = MagicMock(spec=redis.client.Pipeline)
    factory = MagicMock(return_value=client)
    monkeypatch.setattr(redis, 'Redis', factory)
    monkeypatch.setenv(ENV.App.APP_NAME, 'linkshortener')
    monkeypatch.setenv(ENV.App.APP_ENV, 'prod')

    dao = build_dao(Settings(active_backend='redis', backend={'host': 'cache.internal', 'port': 6379, 'db': 1}))

    assert isinstance(dao, ShortURLRedisDAO)
    assert dao.keys.prefix == 'linkshortener:prod'
    _, kwargs = factory.call_args
    assert kwargs['host'] == 'cache.internal'
    assert kwargs['db'] == 1


def test_settings_flow_into_components():
    settings = Settings(shortcode_length=8, max_retries=2, guest_ttl_seconds=60, click_history_limit=5, cache_max_size=10, cache_ttl_seconds=30)

    shortener = LinkShortener(settings, dao=ShortURLMemoryDAO())

    assert shortener.generator.length == 8
    assert shortener.generator.max_retries == 2
    assert shortener.registry.guest_ttl == 60
    assert shortener.resolver.history_limit == 5
    assert shortener.cache.max_size == 10
    assert shortener.cache.ttl == 30
    assert shortener.registry.cache is shortener.resolver.cache
    shortener.stop()


def test_end_to_end_lifecycle():
    with LinkShortener(Settings()) as shortener:
        record = shortener.registry.create('https://example.com', owner_kind=OwnerKind.USER, owner_id='user-1')
        assert len(record.shortcode) == 6
        assert shortener.resolver.resolve(record.shortcode) == 'https://example.com'

        shortener.registry.update(record.shortcode, 'user-1', target='https://new.com')
        assert shortener.resolver.resolve(record.shortcode) == 'https://new.com'

        shortener.registry.delete(record.shortcode, 'user-1')
        with pytest.raises(NotFoundError):
            shortener.resolver.resolve(record.shortcode)

    assert not shortener.cache._sweeper.running
    assert len(shortener.cache) == 0


def test_from_config(monkeypatch: MonkeyPatch):
    initialize_logging = MagicMock()
    monkeypatch.setattr(app, 'initialize_logging', initialize_logging)
    monkeypatch.setattr(app, 'load_settings', lambda: Settings(cache_max_size=7))

    shortener = app.LinkShortener.from_config()

    initialize_logging.assert_called_once()
    assert isinstance(shortener.dao, ShortURLMemoryDAO)
    assert shortener.cache.max_size == 7
    shortener.stop()
