"""Helper utilities shared by the link shortener services.

Functions:
    utcnow() -> datetime
        Return the current time as an aware UTC datetime (default Clock)
    is_http_url(url: str) -> bool
        Check that a URL is absolute and uses the http or https scheme
    to_timestamp(dt: datetime) -> float
        Convert a datetime to a POSIX timestamp, assuming UTC for naive values
    require_environment(*names: str) -> Callable
        Decorator: Ensure required environment variables are present

Example:
    >>> from linkshortener.utils.helpers import is_http_url
    >>> is_http_url('https://example.com/page')
    True
    >>> is_http_url('ftp://example.com/file')
    False
"""

import os
import functools
from datetime import datetime, UTC
from urllib.parse import urlparse
from collections.abc import Callable

from linkshortener.exceptions import MissingEnvironmentVariableError


def utcnow() -> datetime:
    """Return the current time in UTC.

    Returns:
        datetime: timezone-aware current time.
    """
    return datetime.now(UTC)


def is_http_url(url: str) -> bool:
    """Check that a URL is a redirectable http(s) URL

    Args:
        url (str): candidate URL

    Returns:
        bool: True if the URL has an http/https scheme and a host.
    """
    if not isinstance(url, str):
        return False
    try:
        components = urlparse(url.strip())
    except ValueError:
        return False
    return components.scheme in {'http', 'https'} and bool(components.netloc)


def to_timestamp(dt: datetime) -> float:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.timestamp()


def require_environment(*names: str) -> Callable:
    """Decorator ensuring required environment variables are present.

    Args:
        *names (str):
            Names of required environment variables.

    Raises:
        MissingEnvironmentVariableError:
            If any required environment variable is missing or empty.

    Example:
        >>> @require_environment('APPCONFIG_APP_ID', 'APPCONFIG_ENV_ID')
        ... def my_function():
        ...     pass
        >>> my_function()
        MissingEnvironmentVariableError: Missing required environment variables: 'APPCONFIG_APP_ID', 'APPCONFIG_ENV_ID'
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            missing = [name for name in names if not os.environ.get(name)]
            if missing:
                missing_list = ', '.join(f"'{name}'" for name in missing)
                raise MissingEnvironmentVariableError(f'Missing required environment variables: {missing_list}')
            return func(*args, **kwargs)

        return wrapper

    return decorator
