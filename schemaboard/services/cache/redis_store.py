from __future__ import annotations

import logging
import time
import uuid
from typing import Any, AsyncIterator, Callable, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError, ResponseError

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

# Purge, count and conditionally record in one round trip so concurrent
# callers cannot both observe a free slot.
RATE_LIMIT_SCRIPT = """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local max_attempts = tonumber(ARGV[3])
local member = ARGV[4]

redis.call('ZREMRANGEBYSCORE', key, '-inf', now - window)
local count = redis.call('ZCARD', key)
local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
local reset_time = now + window
if oldest[2] then
  reset_time = tonumber(oldest[2]) + window
end

if count < max_attempts then
  redis.call('ZADD', key, now, member)
  redis.call('PEXPIRE', key, window)
  return {1, max_attempts - count - 1, reset_time}
end
return {0, 0, reset_time}
"""

KEYSPACE_EVENTS = "K$gx"


class RedisCacheStore(CacheStore):
    """Cache store backed by Redis (redis-py asyncio client)."""

    def __init__(self, client: redis.Redis, clock: Callable[[], float] = time.time) -> None:
        self._client = client
        self._clock = clock
        self._rate_limit_script = client.register_script(RATE_LIMIT_SCRIPT)

    @classmethod
    def from_url(cls, url: str) -> "RedisCacheStore":
        return cls(redis.from_url(url, decode_responses=True))

    @property
    def client(self) -> redis.Redis:
        return self._client

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        if ttl_seconds:
            await self._client.set(key, encode_value(value), ex=ttl_seconds)
        else:
            await self._client.set(key, encode_value(value))

    async def get(self, key: str) -> Optional[CachedValue]:
        raw = await self._client.get(key)
        if raw is None:
            return None
        return decode_value(raw)

    async def delete(self, key: str) -> None:
        await self._client.delete(key)

    async def exists(self, key: str) -> bool:
        return await self._client.exists(key) == 1

    async def touch(self, key: str, ttl_seconds: int) -> bool:
        return bool(await self._client.expire(key, ttl_seconds))

    async def rate_limit(self, key: str, window_ms: int, max_attempts: int) -> RateLimitResult:
        now = self._now_ms()
        try:
            allowed, remaining, reset_time = await self._rate_limit_script(
                keys=[f"{RATE_LIMIT_PREFIX}{key}"],
                args=[now, window_ms, max_attempts, f"{now}-{uuid.uuid4().hex}"],
            )
        except RedisError as e:
            logger.warning(f"Rate limiter unavailable for {key}, allowing request: {e}")
            return RateLimitResult(success=True, remaining=max_attempts, reset_time=now + window_ms)
        return RateLimitResult(success=bool(allowed), remaining=int(remaining), reset_time=int(reset_time))

    async def enable_keyspace_events(self) -> bool:
        """Turn on keyspace notifications; managed servers may refuse CONFIG."""
        try:
            await self._client.config_set("notify-keyspace-events", KEYSPACE_EVENTS)
            return True
        except ResponseError as e:
            logger.warning(f"Could not enable keyspace notifications: {e}")
            return False

    async def subscribe_changes(self, pattern: str) -> AsyncIterator[KeyChange]:
        db = self._client.connection_pool.connection_kwargs.get("db", 0)
        prefix = f"__keyspace@{db}__:"
        await self.enable_keyspace_events()

        pubsub = self._client.pubsub()
        await pubsub.psubscribe(f"{prefix}{pattern}")
        try:
            async for message in pubsub.listen():
                if message.get("type") != "pmessage":
                    continue
                channel = message["channel"]
                yield KeyChange(key=channel[len(prefix):], operation=message["data"])
        finally:
            await pubsub.punsubscribe()
            await pubsub.aclose()

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError:
            return False

    async def close(self) -> None:
        await self._client.aclose()
        logger.info("Redis connection closed")
