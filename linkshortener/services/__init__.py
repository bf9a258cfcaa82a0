from linkshortener.services.redirect_resolver import RedirectResolver
from linkshortener.services.url_registry import UNSET, UrlPage, UrlRegistry, UrlStats
from linkshortener.services.cleanup import ExpiryCleanupService


__all__ = [
    'RedirectResolver',
    'UNSET',
    'UrlPage',
    'UrlRegistry',
    'UrlStats',
    'ExpiryCleanupService',
]
