"""Composition root

LinkShortener wires the durable store, the hot cache, the short code generator
and the services together and owns their background lifecycle.

Example:
    >>> with LinkShortener.from_config() as shortener:
    ...     record = shortener.registry.create('https://example.com')
    ...     shortener.resolver.resolve(record.shortcode)
    'https://example.com'
"""

import logging
from typing import Optional

from linkshortener.dao.base import ShortURLBaseDAO
from linkshortener.dao.cache import HotCache
from linkshortener.dao.memory import ShortURLMemoryDAO
from linkshortener.dao.redis import ShortURLRedisDAO
from linkshortener.services import ExpiryCleanupService, RedirectResolver, UrlRegistry
from linkshortener.types import Clock
from linkshortener.utils.config import Settings, app_prefix, load_settings
from linkshortener.utils.helpers import utcnow
from linkshortener.utils.logging import initialize_logging
from linkshortener.utils.shortener import ShortCodeGenerator


logger = logging.getLogger(__name__)


def build_dao(settings: Settings) -> ShortURLBaseDAO:
    """Create the durable store selected by `settings.active_backend`

    Raises:
        DataStoreError:
            If the Redis backend is selected and Redis is unreachable.
    """
    if settings.active_backend == 'redis':
        logger.debug('Using Redis as the backend database for short URLs.')
        redis_config = {f'redis_{k}': v for k, v in settings.backend.items()}
        return ShortURLRedisDAO(**redis_config, prefix=app_prefix())

    logger.warning('Using the in-memory backend. Short URLs will not survive a restart.')
    return ShortURLMemoryDAO()


class LinkShortener:
    """Process-wide dependency graph.

    Attributes:
        settings (Settings):
            Parsed configuration.
        dao (ShortURLBaseDAO):
            Durable store.
        cache (HotCache):
            Hot cache shared by the resolver and the registry.
        generator (ShortCodeGenerator):
            Short code generator.
        registry (UrlRegistry):
            Write side.
        resolver (RedirectResolver):
            Redirect hot path.
        cleanup (ExpiryCleanupService):
            Periodic deletion of expired records.
    """

    def __init__(self, settings: Settings, dao: Optional[ShortURLBaseDAO] = None, clock: Clock = utcnow):
        self.settings = settings
        self.dao = build_dao(settings) if dao is None else dao
        self.cache = HotCache(
            max_size=settings.cache_max_size,
            ttl=settings.cache_ttl_seconds,
            sweep_interval=settings.cache_sweep_interval_seconds,
            clock=clock,
        )
        self.generator = ShortCodeGenerator(length=settings.shortcode_length, max_retries=settings.max_retries)
        self.registry = UrlRegistry(self.dao, self.cache, self.generator, clock=clock, guest_ttl=settings.guest_ttl_seconds)
        self.resolver = RedirectResolver(self.dao, self.cache, clock=clock, history_limit=settings.click_history_limit)
        self.cleanup = ExpiryCleanupService(self.dao, clock=clock, interval=settings.cleanup_interval_seconds)

    @classmethod
    def from_config(cls) -> 'LinkShortener':
        """Configure logging, load settings from AppConfig and build the graph"""
        initialize_logging()
        settings = load_settings()
        logger.info('Starting link shortener.', extra={'backend': settings.active_backend, 'build': settings.build})
        return cls(settings)

    def start(self) -> None:
        self.cache.start()
        self.cleanup.start()

    def stop(self) -> None:
        self.cleanup.stop()
        self.resolver.shutdown(wait=True)
        self.cache.destroy()

    def __enter__(self) -> 'LinkShortener':
        self.start()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.stop()
