"""
In-process cache store for local development and tests.

Mirrors the Redis backend semantics (TTL, sliding-window limiter, keyspace
change feed) without an external server. All data is lost on process exit.
"""
from __future__ import annotations

import asyncio
import fnmatch
import logging
import time
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Tuple

from .store import (
    RATE_LIMIT_PREFIX,
    CacheStore,
    CachedValue,
    KeyChange,
    RateLimitResult,
    decode_value,
    encode_value,
)

logger = logging.getLogger(__name__)


class InMemoryCacheStore(CacheStore):
    """Dictionary-backed CacheStore.

    Expiry is evaluated lazily against the injected clock, which lets tests
    move time forward without sleeping.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._values: Dict[str, Tuple[str, Optional[float]]] = {}
        self._windows: Dict[str, List[int]] = {}
        self._lock = asyncio.Lock()
        self._subscribers: List[Tuple[str, asyncio.Queue]] = []

    def _notify(self, key: str, operation: str) -> None:
        for pattern, queue in self._subscribers:
            if fnmatch.fnmatchcase(key, pattern):
                queue.put_nowait(KeyChange(key=key, operation=operation))

    def _live(self, key: str) -> Optional[str]:
        entry = self._values.get(key)
        if entry is None:
            return None
        raw, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._values[key]
            self._notify(key, "expired")
            return None
        return raw

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        self._values[key] = (encode_value(value), expires_at)
        self._notify(key, "set")

    async def get(self, key: str) -> Optional[CachedValue]:
        raw = self._live(key)
        return decode_value(raw) if raw is not None else None

    async def delete(self, key: str) -> None:
        if self._values.pop(key, None) is not None:
            self._notify(key, "del")

    async def exists(self, key: str) -> bool:
        return self._live(key) is not None

    async def touch(self, key: str, ttl_seconds: int) -> bool:
        raw = self._live(key)
        if raw is None:
            return False
        self._values[key] = (raw, self._clock() + ttl_seconds)
        return True

    def ttl(self, key: str) -> Optional[float]:
        """Seconds left before the key expires; None when absent or persistent."""
        if self._live(key) is None:
            return None
        expires_at = self._values[key][1]
        return None if expires_at is None else expires_at - self._clock()

    async def rate_limit(self, key: str, window_ms: int, max_attempts: int) -> RateLimitResult:
        async with self._lock:
            now = int(self._clock() * 1000)
            bucket = self._windows.setdefault(f"{RATE_LIMIT_PREFIX}{key}", [])
            bucket[:] = [stamp for stamp in bucket if stamp > now - window_ms]
            reset_time = bucket[0] + window_ms if bucket else now + window_ms
            if len(bucket) < max_attempts:
                bucket.append(now)
                return RateLimitResult(True, max_attempts - len(bucket), reset_time)
            return RateLimitResult(False, 0, reset_time)

    async def subscribe_changes(self, pattern: str) -> AsyncIterator[KeyChange]:
        queue: asyncio.Queue = asyncio.Queue()
        subscription = (pattern, queue)
        self._subscribers.append(subscription)
        try:
            while True:
                yield await queue.get()
        finally:
            self._subscribers.remove(subscription)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._values.clear()
        self._windows.clear()
        logger.debug("InMemoryCacheStore closed")
