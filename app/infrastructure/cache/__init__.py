"""Cache: pluggable backends, memoization, and cache key utilities.

InMemoryCache (bounded LRU) and RedisCache implement CacheProtocol;
MemoCache adds single-flight get_or_compute on top. Key format lives in
keys.py (DRY).
"""

from app.core.config import Settings
from app.infrastructure.cache.cache_protocol import CacheProtocol
from app.infrastructure.cache.keys import canonical_json, derive_key
from app.infrastructure.cache.memo import MemoCache
from app.infrastructure.cache.memory_cache import InMemoryCache
from app.infrastructure.cache.redis_cache import RedisCache


def create_cache_backend(settings: Settings) -> CacheProtocol:
    """Build the backend selected by CACHE_BACKEND ("memory" or "redis")."""
    if settings.cache_backend == "redis":
        return RedisCache(settings)
    return InMemoryCache(max_entries=settings.cache_max_entries)


__all__ = [
    "CacheProtocol",
    "InMemoryCache",
    "MemoCache",
    "RedisCache",
    "canonical_json",
    "create_cache_backend",
    "derive_key",
]
