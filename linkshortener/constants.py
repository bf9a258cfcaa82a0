from enum import StrEnum


class TTL:
    """TTL durations in seconds."""

    # Guest-owned short URLs always expire after 7 days
    GUEST_LINK = 604_800  # 60 * 60 * 24 * 7
    # In-process hot cache entry TTL (1 hour in seconds)
    HOT_CACHE = 3_600  # 60 * 60


class Defaults:
    """Default tuning values."""

    SHORTCODE_LENGTH = 6
    SHORTCODE_MAX_RETRIES = 5
    SHORTCODE_FALLBACK_EXTRA_LENGTH = 2  # fallback codes are this much longer
    SHORTCODE_INSERT_ATTEMPTS = 3  # store-level duplicates tolerated for generated codes

    CUSTOM_SLUG_MIN_LENGTH = 3
    CUSTOM_SLUG_MAX_LENGTH = 50

    CACHE_MAX_SIZE = 1_000
    CACHE_SWEEP_INTERVAL = 300  # 5 minutes in seconds
    CLEANUP_INTERVAL = 3_600  # 1 hour in seconds

    CLICK_HISTORY_LIMIT = 100
    CLICK_RECORDER_WORKERS = 4
    CLICK_RECORDER_MAX_PENDING = 1_000  # queued + running clicks before new ones are dropped
    RECENT_CLICKS = 10

    PAGE_SIZE = 10


class ENV:
    """Environment variable names."""

    class App(StrEnum):
        APP_ENV = 'APP_ENV'
        APP_NAME = 'APP_NAME'
        PROJECT_ROOT = 'PROJECT_ROOT'
        AWS_SAM_LOCAL = 'AWS_SAM_LOCAL'
        LOG_LEVEL = 'LOG_LEVEL'

    class AppConfig(StrEnum):
        APP_ID = 'APPCONFIG_APP_ID'
        ENV_ID = 'APPCONFIG_ENV_ID'
        PROFILE_ID = 'APPCONFIG_PROFILE_ID'
        AGENT_URL = 'APPCONFIG_AGENT_URL'
        PROFILE_NAME = 'APPCONFIG_PROFILE_NAME'


# Log event codes
SHORTCODE_COLLISION = 'SHORTCODE_COLLISION'
SHORTCODE_FALLBACK = 'SHORTCODE_FALLBACK'
SHORTCODE_INSERT_RACE = 'SHORTCODE_INSERT_RACE'
SHORT_URL_CREATED = 'SHORT_URL_CREATED'
SHORT_URL_UPDATED = 'SHORT_URL_UPDATED'
SHORT_URL_DELETED = 'SHORT_URL_DELETED'
SHORT_URL_NOT_FOUND = 'SHORT_URL_NOT_FOUND'
SHORT_URL_EXPIRED = 'SHORT_URL_EXPIRED'
GUEST_LINKS_MIGRATED = 'GUEST_LINKS_MIGRATED'
CLICK_RECORDING_FAILED = 'CLICK_RECORDING_FAILED'
CACHE_SWEEP = 'CACHE_SWEEP'
CLEANUP_COMPLETE = 'CLEANUP_COMPLETE'
CLEANUP_FAILED = 'CLEANUP_FAILED'
PERIODIC_TASK_FAILED = 'PERIODIC_TASK_FAILED'
