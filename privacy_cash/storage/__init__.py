"""
Privacy Cash Client Storage
Note cache persistence.
"""

from privacy_cash.storage.cache import CacheStore, MemoryCacheStore, cache_key
from privacy_cash.storage.sqlite import SQLiteCacheStore

__all__ = [
    "CacheStore",
    "MemoryCacheStore",
    "SQLiteCacheStore",
    "cache_key",
]
