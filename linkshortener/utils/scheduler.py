"""Background periodic task runner

A PeriodicTask calls a function every `interval` seconds on a single daemon
thread until stopped. Exceptions raised by the function are logged and the
task keeps running: the next tick is the retry.

Example:
    >>> task = PeriodicTask(cache.cleanup_expired, interval=300, name='hot-cache-sweep')
    >>> task.start()
    >>> ...
    >>> task.stop()
"""

import logging
import threading
from collections.abc import Callable
from typing import Any, Optional

from linkshortener.constants import PERIODIC_TASK_FAILED


logger = logging.getLogger(__name__)


class PeriodicTask:
    """Run a callable periodically on a background daemon thread.

    Attributes:
        func (Callable[[], Any]):
            Function to call on every tick.
        interval (float):
            Seconds between the end of one run and the start of the next.
        name (str):
            Thread name, used in logs.
        run_immediately (bool):
            If True, run once right after start() instead of waiting a full interval.
    """

    def __init__(self, func: Callable[[], Any], interval: float, name: str, run_immediately: bool = False):
        if interval <= 0:
            raise ValueError(f'Interval must be a positive number of seconds (given value: {interval}).')

        self.func = func
        self.interval = interval
        self.name = name
        self.run_immediately = run_immediately

        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.running:
                logger.debug('Periodic task %s already running.', self.name)
                return
            self._stopped.clear()
            self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
            self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        with self._lock:
            thread, self._thread = self._thread, None
            self._stopped.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def run_once(self) -> None:
        try:
            self.func()
        except Exception:
            logger.exception(
                'Periodic task %s failed. Retrying on next tick.',
                self.name,
                extra={'event': PERIODIC_TASK_FAILED, 'task': self.name},
            )

    def _run(self) -> None:
        if self.run_immediately:
            self.run_once()
        while not self._stopped.wait(self.interval):
            self.run_once()
