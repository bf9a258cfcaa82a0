"""Utility functions for application configuration management.

This module provides a standardized interface for the link shortener to
access configuration data stored in **AWS AppConfig**. Each environment
(`APP_ENV`) has a dedicated AppConfig *Environment* within the shared
AppConfig *Application* identified by `APP_NAME`. Configuration data is
stored as a JSON document under a configuration profile (typically
`backend-config`) and deployed to the corresponding environment.

The configuration JSON follows this structure:

    {
        "build": 7,
        "active_backend": "redis",
        "backends": {
            "redis": {"host": "...", "port": 6379, "db": 0}
        },
        "shortener": {"shortcode_length": 6, "max_retries": 5, ...},
        "cache": {"max_size": 1000, "ttl_seconds": 3600, ...},
        "cleanup": {"interval_seconds": 3600}
    }

Every section and key is optional; missing values fall back to the defaults
in `linkshortener.constants`.

Functions:
    app_env() -> str
        Return the current application environment (`APP_ENV`) value,
        defaulting to `'local'`.

    app_name() -> str | None
        Return the application name (`APP_NAME`), or None if not set.

    app_prefix() -> str | None
        Return application prefix for DAOs, or None if `APP_NAME` is not set.

    _sam_load_local_appconfig(func) -> Callable[[], dict]:
        Load AppConfig from a local AppConfig agent when running locally.
        Decorates `load_config()`.

    load_config() -> dict
        Load the configuration document from AWS AppConfig.

    load_settings() -> Settings
        Load the configuration document and parse it into Settings. Falls back
        to defaults when AppConfig is not configured for this environment.

Example:
    >>> from linkshortener.utils.config import load_settings
    >>> settings = load_settings()
    >>> settings.cache_max_size
    1000
"""

import os
import json
import functools
import logging
import urllib.parse
import urllib.request
from dataclasses import dataclass, field
from collections.abc import Callable
from typing import Any

import boto3

from linkshortener.constants import ENV, TTL, Defaults
from linkshortener.exceptions import BadConfigurationError, MissingEnvironmentVariableError
from linkshortener.types import AppConfig
from linkshortener.utils.helpers import require_environment
from linkshortener.utils.runtime import running_locally


logger = logging.getLogger(__name__)


def app_env() -> str:
    """Return the current application environment by reading 'APP_ENV'

    Returns:
        str:
            Value of `APP_ENV` environment variable, `'local'` by default.

    Example:
        >>> os.environ['APP_ENV'] = 'dev'
        >>> app_env()
        'dev'
    """
    return os.environ.get(ENV.App.APP_ENV, 'local').lower()


def app_name() -> str | None:
    """Return the current application name by reading 'APP_NAME'

    Returns:
        str:
            Value of `APP_NAME` environment variable.
            None if variable is not set.
    """
    return os.environ.get(ENV.App.APP_NAME)


def app_prefix() -> str | None:
    """Return application prefix for DAOs

    Returns:
        str: app prefix as <app name>:<app env>.
             None if APP_NAME is not set.

    Example:
        >>> os.environ['APP_NAME'] = 'linkshortener'
        >>> os.environ['APP_ENV'] = 'local'
        >>> app_prefix()
        'linkshortener:local'
    """
    return None if app_name() is None else f'{app_name()}:{app_env()}'


@dataclass(frozen=True)
class Settings:
    """Parsed application configuration.

    Attributes:
        active_backend (str):
            Durable store backend, 'redis' or 'memory'.
        backend (dict[str, Any]):
            Connection parameters for the active backend.
        shortcode_length (int):
            Length of generated short codes.
        max_retries (int):
            Collision retries before the longer-code fallback.
        guest_ttl_seconds (int):
            Lifetime of guest-owned short URLs.
        click_history_limit (int):
            Maximum number of clicks kept per short URL.
        cache_max_size (int):
            Hot cache capacity.
        cache_ttl_seconds (int):
            Hot cache entry TTL.
        cache_sweep_interval_seconds (int):
            Period of the hot cache expiry sweep.
        cleanup_interval_seconds (int):
            Period of the durable store expiry sweep.
        build (int | None):
            AppConfig build number, if any.
    """

    active_backend: str = 'memory'
    backend: dict[str, Any] = field(default_factory=dict)
    shortcode_length: int = Defaults.SHORTCODE_LENGTH
    max_retries: int = Defaults.SHORTCODE_MAX_RETRIES
    guest_ttl_seconds: int = TTL.GUEST_LINK
    click_history_limit: int = Defaults.CLICK_HISTORY_LIMIT
    cache_max_size: int = Defaults.CACHE_MAX_SIZE
    cache_ttl_seconds: int = TTL.HOT_CACHE
    cache_sweep_interval_seconds: int = Defaults.CACHE_SWEEP_INTERVAL
    cleanup_interval_seconds: int = Defaults.CLEANUP_INTERVAL
    build: int | None = None

    @classmethod
    def from_document(cls, document: AppConfig) -> 'Settings':
        """Build Settings from an AppConfig document

        Raises:
            BadConfigurationError:
                If a value has the wrong type or is out of range, or the active
                backend has no connection section.
        """
        try:
            shortener = document.get('shortener', {})
            cache = document.get('cache', {})
            cleanup = document.get('cleanup', {})
            active_backend = document.get('active_backend', 'memory')
            backend = document.get('backends', {}).get(active_backend, {})

            guest_ttl_days = shortener.get('guest_ttl_days')
            # fmt: off
            settings = cls(
                active_backend=active_backend,
                backend=dict(backend),
                shortcode_length=int(shortener.get('shortcode_length', Defaults.SHORTCODE_LENGTH)),
                max_retries=int(shortener.get('max_retries', Defaults.SHORTCODE_MAX_RETRIES)),
                guest_ttl_seconds=TTL.GUEST_LINK if guest_ttl_days is None else int(guest_ttl_days) * 86_400,
                click_history_limit=int(shortener.get('click_history_limit', Defaults.CLICK_HISTORY_LIMIT)),
                cache_max_size=int(cache.get('max_size', Defaults.CACHE_MAX_SIZE)),
                cache_ttl_seconds=int(cache.get('ttl_seconds', TTL.HOT_CACHE)),
                cache_sweep_interval_seconds=int(cache.get('sweep_interval_seconds', Defaults.CACHE_SWEEP_INTERVAL)),
                cleanup_interval_seconds=int(cleanup.get('interval_seconds', Defaults.CLEANUP_INTERVAL)),
                build=document.get('build'),
            )
            # fmt: on
        except (AttributeError, TypeError, ValueError) as e:
            raise BadConfigurationError(f'Malformed configuration document: {e}') from e

        if settings.active_backend not in {'redis', 'memory'}:
            raise BadConfigurationError(f"Unsupported backend '{settings.active_backend}' (expected 'redis' or 'memory').")
        if settings.active_backend == 'redis' and not settings.backend:
            raise BadConfigurationError("Missing 'backends.redis' section for the active redis backend.")

        positive = {
            'shortcode_length': settings.shortcode_length,
            'guest_ttl_seconds': settings.guest_ttl_seconds,
            'click_history_limit': settings.click_history_limit,
            'cache_max_size': settings.cache_max_size,
            'cache_ttl_seconds': settings.cache_ttl_seconds,
            'cache_sweep_interval_seconds': settings.cache_sweep_interval_seconds,
            'cleanup_interval_seconds': settings.cleanup_interval_seconds,
        }
        for name, value in positive.items():
            if value <= 0:
                raise BadConfigurationError(f'{name} must be positive (given value: {value}).')
        if settings.max_retries < 0:
            raise BadConfigurationError(f'max_retries must be non-negative (given value: {settings.max_retries}).')

        return settings


def _sam_load_local_appconfig(func: Callable[[], AppConfig]) -> Callable[[], AppConfig]:
    """Decorator: load AppConfig from a local AppConfig Agent when running locally

    Behavior:
        - If the application is running locally and `APPCONFIG_AGENT_URL` is set
          to a safe local URL, fetch the configuration JSON from the local AppConfig agent.
        - Else, call the wrapped function (which pulls from AWS AppConfig via boto3).

    Environment variables used:
        APPCONFIG_AGENT_URL     – Base URL of the local AppConfig Agent (e.g., http://host.docker.internal:2772).
        APPCONFIG_PROFILE_NAME  – Optional profile name (default: "backend-config").
    """

    # ruff: noqa: E701
    def __validate_appconfig_url(url: str | None) -> str:
        if not url:
            return ''
        components = urllib.parse.urlparse(url)
        if components.scheme not in {'http', 'https'}:
            raise BadConfigurationError(f'Bad scheme {url}')
        if components.hostname not in {'localhost', '127.0.0.1', 'host.docker.internal'}:
            raise BadConfigurationError(f'Bad host {url}')
        if components.port not in {2772, None}:
            raise BadConfigurationError(f'Bad port {url}')
        return url

    # ruff: enable

    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> AppConfig:
        agent_url = __validate_appconfig_url(os.getenv(ENV.AppConfig.AGENT_URL))
        if not running_locally() or not agent_url:
            return func(*args, **kwargs)

        profile_name = os.getenv(ENV.AppConfig.PROFILE_NAME, 'backend-config')
        url = f'{agent_url}/applications/{app_name()}/environments/{app_env()}/configurations/{profile_name}'

        logger.debug('Trying to load AppConfig from local agent.', extra={'agentUrl': url})
        with urllib.request.urlopen(url, timeout=5) as r:  # noqa: S310
            document = json.load(r)

        logger.debug('Loaded AppConfig from local agent.', extra={'build': document.get('build')})
        return document

    return wrapper


@_sam_load_local_appconfig
@require_environment(ENV.AppConfig.APP_ID, ENV.AppConfig.ENV_ID, ENV.AppConfig.PROFILE_ID)
def load_config() -> AppConfig:
    """Load the configuration document from AWS AppConfig

    Environment variables required:
        APPCONFIG_APP_ID       – AppConfig Application ID
        APPCONFIG_ENV_ID       – AppConfig Environment ID
        APPCONFIG_PROFILE_ID   – AppConfig Configuration Profile ID

    Returns:
        dict: The configuration document as a Python dictionary.

    Raises:
        MissingEnvironmentVariableError:
            If any of the AppConfig environment variables is missing.
        botocore.exceptions.BotoCoreError / ClientError:
            If the AppConfig Data API calls fail.
    """
    logger.debug('Trying to load AppConfig from AWS AppConfig.')

    appconfig = boto3.client('appconfigdata')

    # Start an AppConfig data session
    session_token = appconfig.start_configuration_session(
        ApplicationIdentifier=os.environ[ENV.AppConfig.APP_ID],
        EnvironmentIdentifier=os.environ[ENV.AppConfig.ENV_ID],
        ConfigurationProfileIdentifier=os.environ[ENV.AppConfig.PROFILE_ID],
    )['InitialConfigurationToken']

    # Fetch the configuration
    response = appconfig.get_latest_configuration(ConfigurationToken=session_token)
    content = response['Configuration'].read()
    document = json.loads(content.decode('utf-8'))

    logger.debug('Loaded AppConfig from AWS AppConfig.', extra={'build': document.get('build')})
    return document


def load_settings() -> Settings:
    """Load and parse application settings

    Returns:
        Settings: parsed settings. Built-in defaults (in-memory backend) are
                  used when no AppConfig environment is configured.

    Raises:
        BadConfigurationError:
            If the fetched document is malformed.
    """
    try:
        document = load_config()
    except MissingEnvironmentVariableError:
        logger.info('AppConfig is not configured for this environment. Using default settings.')
        return Settings()
    return Settings.from_document(document)
