from linkshortener.dao.cache.hot_cache import CacheEntry, HotCache

__all__ = [
    'CacheEntry',
    'HotCache',
]
