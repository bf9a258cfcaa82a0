"""Structured JSON logging for the link shortener

Every record is rendered as one JSON document on stdout. Fields passed via
`extra=` are copied into the document, which is how the services attach
the event vocabulary from `linkshortener.constants`:

    - `event`: what happened (SHORT_URL_CREATED, CLICK_RECORDING_FAILED, ...)
    - `shortcode`: the short code concerned, when there is one
    - event specific fields (`owner_kind`, `removed`, `max_pending`, ...)

Each document is also stamped with the application environment (`APP_ENV`)
so that logs from several deployments can share one sink.

Call `initialize_logging()` once at process start-up, before anything else
logs. `LinkShortener.from_config()` does it.

Example record:
{
    "timestamp": "2025-12-26T12:00:00.000Z",
    "level": "INFO",
    "logger": "linkshortener.services.url_registry",
    "message": "Short URL created.",
    "env": "prod",
    "event": "SHORT_URL_CREATED",
    "shortcode": "abc123"
}
"""

import os
import json
import logging
import logging.config
from datetime import datetime, UTC

from linkshortener.constants import ENV


# Attributes every LogRecord carries; anything else came in through `extra=`
RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {'message', 'asctime'}


class JsonFormatter(logging.Formatter):
    """Render a LogRecord and its `extra` fields as a JSON document"""

    def __init__(self, env: str | None = None):
        super().__init__()
        self.env = env

    def format(self, record: logging.LogRecord) -> str:
        document = {
            'timestamp': datetime.fromtimestamp(record.created, tz=UTC).isoformat(timespec='milliseconds').replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        if self.env is not None:
            document['env'] = self.env

        document.update((key, value) for key, value in vars(record).items() if key not in RECORD_ATTRS)

        if record.exc_info:
            document['exception'] = self.formatException(record.exc_info)

        # enums, datetimes and other non-JSON extras are rendered with str()
        return json.dumps(document, default=str)


def initialize_logging() -> None:
    """Send JSON logs to stdout at the level given by `LOG_LEVEL` (INFO by default)"""
    log_level = os.getenv(ENV.App.LOG_LEVEL, 'INFO').upper()
    logging.config.dictConfig(
        {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'json': {
                    '()': JsonFormatter,
                    'env': os.getenv(ENV.App.APP_ENV, 'local').lower(),
                }
            },
            'handlers': {
                'stdout': {
                    'class': 'logging.StreamHandler',
                    'formatter': 'json',
                    'stream': 'ext://sys.stdout',
                }
            },
            'root': {
                'level': log_level,
                'handlers': ['stdout'],
            },
        }
    )
