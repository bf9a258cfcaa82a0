"""Redirect hot path

RedirectResolver turns a short code into its redirect target:

    - Step 1: Look the code up in the hot cache
    - Step 2: On a miss, load the record from the durable store
    - Step 3: Reject inactive and expired records, fill the cache
    - Step 4: Record the click in the background

Click recording never delays or fails a redirect: it runs on a thread pool
with a bounded backlog, and its failures are only logged.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

from linkshortener.constants import Defaults, CLICK_RECORDING_FAILED, SHORT_URL_EXPIRED, SHORT_URL_NOT_FOUND
from linkshortener.dao.base import ShortURLBaseDAO
from linkshortener.dao.cache import HotCache
from linkshortener.dao.exceptions import ShortURLNotFoundError
from linkshortener.exceptions import ExpiredError, NotFoundError
from linkshortener.models import ClickModel, ShortURLModel
from linkshortener.types import Clock
from linkshortener.utils.helpers import utcnow


logger = logging.getLogger(__name__)


class RedirectResolver:
    """Resolve short codes to redirect targets.

    Attributes:
        dao (ShortURLBaseDAO):
            Durable store.
        cache (HotCache):
            Hot cache shared with UrlRegistry.
        history_limit (int):
            Maximum number of clicks kept per short URL.
        max_pending (int):
            Clicks that may be queued or in flight at once. Further clicks
            are dropped and logged until the backlog drains.
    """

    def __init__(
        self,
        dao: ShortURLBaseDAO,
        cache: HotCache,
        clock: Clock = utcnow,
        history_limit: int = Defaults.CLICK_HISTORY_LIMIT,
        max_workers: int = Defaults.CLICK_RECORDER_WORKERS,
        max_pending: int = Defaults.CLICK_RECORDER_MAX_PENDING,
    ):
        self.dao = dao
        self.cache = cache
        self.history_limit = history_limit
        self.max_pending = max_pending
        self._clock = clock
        self._pending = threading.BoundedSemaphore(max_pending)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='click-recorder')

    def resolve(self, shortcode: str, click: Optional[ClickModel] = None) -> str:
        """Return the redirect target for a short code and record the click

        Args:
            shortcode (str):
                Requested short code.
            click (Optional[ClickModel]):
                Request metadata. A bare click stamped with the current time
                is recorded when omitted.

        Returns:
            str: redirect target URL.

        Raises:
            NotFoundError:
                If the short code is unknown or inactive.
            ExpiredError:
                If the short code is past its expiration.
            DataStoreError:
                If the durable store is unreachable on a cache miss.

        Example:
            >>> resolver.resolve('abc123', ClickModel(timestamp=utcnow(), ip='203.0.113.7'))
            'https://example.com'
        """
        target = self.cache.get(shortcode)
        if target is None:
            version = self.cache.version
            record = self._load(shortcode)
            self.cache.set(shortcode, record.target, expires_at=record.expires_at, version=version)
            target = record.target
        else:
            logger.debug('Hot cache hit.', extra={'shortcode': shortcode})

        self._record_click(shortcode, click or ClickModel(timestamp=self._clock()))
        return target

    def info(self, shortcode: str) -> ShortURLModel:
        """Return the record behind a short code without recording a click

        Raises:
            NotFoundError / ExpiredError:
                Same rules as resolve().
        """
        return self._load(shortcode)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _load(self, shortcode: str) -> ShortURLModel:
        try:
            record = self.dao.get(shortcode)
        except ShortURLNotFoundError:
            logger.info('Short URL record not found.', extra={'shortcode': shortcode, 'event': SHORT_URL_NOT_FOUND})
            raise NotFoundError(f"Short URL '{shortcode}' not found.") from None

        if not record.is_active:
            logger.info(
                'Short URL record is inactive.',
                extra={'shortcode': shortcode, 'event': SHORT_URL_NOT_FOUND, 'reason': 'inactive'},
            )
            raise NotFoundError(f"Short URL '{shortcode}' not found.")

        if record.is_expired(self._clock()):
            logger.info(
                'Short URL record expired.',
                extra={'shortcode': shortcode, 'event': SHORT_URL_EXPIRED, 'expires_at': record.expires_at},
            )
            raise ExpiredError(f"Short URL '{shortcode}' has expired.")

        return record

    def _record_click(self, shortcode: str, click: ClickModel) -> None:
        if not self._pending.acquire(blocking=False):
            logger.warning(
                'Click recorder backlog is full. Dropping click.',
                extra={'shortcode': shortcode, 'event': CLICK_RECORDING_FAILED, 'max_pending': self.max_pending},
            )
            return

        try:
            future = self._executor.submit(self.dao.hit, shortcode, click, self.history_limit)
        except RuntimeError:
            self._pending.release()
            logger.warning(
                'Click recorder is shut down. Dropping click.',
                extra={'shortcode': shortcode, 'event': CLICK_RECORDING_FAILED},
            )
            return
        future.add_done_callback(lambda f: self._click_done(shortcode, f))

    def _click_done(self, shortcode: str, future: Future) -> None:
        self._pending.release()
        error = future.exception()
        if error is None:
            return
        logger.error(
            'Failed to record click.',
            exc_info=error,
            extra={'shortcode': shortcode, 'event': CLICK_RECORDING_FAILED},
        )
