"""Throttling of sensitive, externally triggered operations."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from schemaboard.domain.errors import TooManyRequestsError, ValidationError
from schemaboard.services.cache.store import CacheStore, RateLimitResult

logger = logging.getLogger(__name__)

THREE_MINUTES_MS = 3 * 60 * 1000


@dataclass(frozen=True)
class ThrottlePolicy:
    scope: str
    window_ms: int
    max_attempts: int


INVITATION_POLICY = ThrottlePolicy(scope="invite", window_ms=THREE_MINUTES_MS, max_attempts=2)
PASSWORD_RESET_POLICY = ThrottlePolicy(scope="reset", window_ms=THREE_MINUTES_MS, max_attempts=2)


class ThrottleService:
    """Applies sliding-window policies through the cache store's rate limiter."""

    def __init__(self, cache: CacheStore) -> None:
        self._cache = cache

    @staticmethod
    def subject_key(policy: ThrottlePolicy, subject: str) -> str:
        return f"{subject.strip().lower()}:{policy.scope}"

    async def check(self, policy: ThrottlePolicy, subject: str) -> RateLimitResult:
        """Record one attempt and report whether it is allowed."""
        if not subject or not subject.strip():
            raise ValidationError("Throttle subject is required")
        return await self._cache.rate_limit(self.subject_key(policy, subject), policy.window_ms, policy.max_attempts)

    async def enforce(self, policy: ThrottlePolicy, subject: str) -> RateLimitResult:
        """Like check(), but raise TooManyRequestsError when refused."""
        result = await self.check(policy, subject)
        if not result.success:
            logger.info(f"Throttled {policy.scope} for {subject} until {result.reset_time}")
            raise TooManyRequestsError("Too many attempts. Please try again later")
        return result
