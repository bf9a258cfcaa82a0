from linkshortener.utils.config import app_env, app_name, app_prefix, load_config, load_settings, Settings
from linkshortener.utils.helpers import utcnow, is_http_url, to_timestamp, require_environment
from linkshortener.utils.shortener import CodeExistenceChecker, ShortCodeGenerator, generate_shortcode, is_valid_slug
from linkshortener.utils.scheduler import PeriodicTask
from linkshortener.utils.logging import initialize_logging


__all__ = [
    'CodeExistenceChecker',
    'ShortCodeGenerator',
    'generate_shortcode',
    'is_valid_slug',
    'app_env',
    'app_name',
    'app_prefix',
    'load_config',
    'load_settings',
    'Settings',
    'utcnow',
    'is_http_url',
    'to_timestamp',
    'require_environment',
    'PeriodicTask',
    'initialize_logging',
]
