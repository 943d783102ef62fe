"""Key-value cache contract shared by the Redis and in-memory backends."""
from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

RATE_LIMIT_PREFIX = "rate_limit:"


@dataclass(frozen=True)
class CachedValue:
    """A cache read: either a decoded JSON document or the raw string as stored."""
    raw: str
    parsed: Any = None
    is_structured: bool = False

    @property
    def value(self) -> Any:
        return self.parsed if self.is_structured else self.raw


@dataclass(frozen=True)
class RateLimitResult:
    success: bool
    remaining: int
    reset_time: int  # epoch milliseconds


@dataclass(frozen=True)
class KeyChange:
    key: str
    operation: str  # "set", "del" or "expired"


def encode_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


def decode_value(raw: str) -> CachedValue:
    try:
        return CachedValue(raw=raw, parsed=json.loads(raw), is_structured=True)
    except (TypeError, ValueError):
        return CachedValue(raw=raw)


class CacheStore(ABC):
    """Abstract cache with TTL, a sliding-window rate limiter and change feed."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        """Store a value; dicts and lists are JSON-encoded."""

    @abstractmethod
    async def get(self, key: str) -> Optional[CachedValue]:
        """Return the stored value, or None when absent or expired."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        pass

    @abstractmethod
    async def touch(self, key: str, ttl_seconds: int) -> bool:
        """Restart the TTL of a live key; False when the key is absent."""

    @abstractmethod
    async def rate_limit(self, key: str, window_ms: int, max_attempts: int) -> RateLimitResult:
        """Atomically check and record one attempt for ``rate_limit:{key}``.

        Attempts older than the window are discarded first; the attempt is only
        recorded when it is allowed. Backend failures allow the attempt.
        """

    @abstractmethod
    def subscribe_changes(self, pattern: str) -> AsyncIterator[KeyChange]:
        """Yield set/del/expired notifications for keys matching a glob pattern."""

    @abstractmethod
    async def ping(self) -> bool:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass

    async def get_json(self, key: str) -> Any:
        """Convenience read returning the decoded value (or raw string)."""
        cached = await self.get(key)
        return cached.value if cached is not None else None
