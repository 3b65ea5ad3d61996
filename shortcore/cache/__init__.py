from shortcore.cache.lookup_cache import LookupCache, CacheEntry, CacheStats


__all__ = [
    'LookupCache',
    'CacheEntry',
    'CacheStats',
]
