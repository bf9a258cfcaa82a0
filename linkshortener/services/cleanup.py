"""Periodic deletion of expired short URLs

Resolution already refuses expired records; this service only reclaims the
storage they occupy.
"""

import logging

from linkshortener.constants import Defaults, CLEANUP_COMPLETE, CLEANUP_FAILED
from linkshortener.dao.base import ShortURLBaseDAO
from linkshortener.dao.exceptions import DataStoreError
from linkshortener.types import Clock
from linkshortener.utils.helpers import utcnow
from linkshortener.utils.scheduler import PeriodicTask


logger = logging.getLogger(__name__)


class ExpiryCleanupService:
    def __init__(self, dao: ShortURLBaseDAO, clock: Clock = utcnow, interval: int = Defaults.CLEANUP_INTERVAL):
        self.dao = dao
        self._clock = clock
        self._task = PeriodicTask(self.run_cleanup, interval=interval, name='expiry-cleanup', run_immediately=True)

    def run_cleanup(self) -> int:
        """Delete every record that expired before now

        Returns:
            int: number of deleted records, 0 if the store was unreachable.
        """
        try:
            deleted = self.dao.delete_expired(before=self._clock())
        except DataStoreError:
            logger.exception('Expired short URL cleanup failed.', extra={'event': CLEANUP_FAILED})
            return 0

        logger.info('Deleted %s expired short URLs.', deleted, extra={'event': CLEANUP_COMPLETE, 'deleted': deleted})
        return deleted

    def start(self) -> None:
        self._task.start()

    def stop(self) -> None:
        self._task.stop()
