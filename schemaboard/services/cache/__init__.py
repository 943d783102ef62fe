"""Cache service component package."""
from .store import CacheStore, CachedValue, KeyChange, RateLimitResult
from .memory_store import InMemoryCacheStore
from .redis_store import RedisCacheStore

__all__ = [
    "CacheStore",
    "CachedValue",
    "KeyChange",
    "RateLimitResult",
    "InMemoryCacheStore",
    "RedisCacheStore",
]
