"""Connection gatekeepers run before any realtime event handler is attached.

Gatekeepers form a chain. Each one receives the connection context and a
``call_next`` coroutine; it must await ``call_next()`` for admission to
continue. Raising AuthenticationError rejects with that reason. Returning
without continuing, or failing unexpectedly, rejects with a generic message so
the client cannot tell which check failed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Protocol, Sequence

import jwt

from schemaboard.config import settings
from schemaboard.db.identity_directory import Identity, IdentityDirectory, LoginSession
from schemaboard.db.models import utc_now
from schemaboard.domain.errors import AuthenticationError
from schemaboard.realtime.tokens import verify_access_token

logger = logging.getLogger(__name__)

GENERIC_REJECTION = "Authentication error"

CallNext = Callable[[], Awaitable[None]]


@dataclass
class ConnectionContext:
    """Handshake data of one connection plus whatever gatekeepers attach to it."""
    connection_id: str
    cookies: Mapping[str, str] = field(default_factory=dict)
    auth: Mapping[str, Any] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    user: Optional[Identity] = None
    session: Optional[LoginSession] = None
    state: Dict[str, Any] = field(default_factory=dict)


class Gatekeeper(Protocol):
    async def apply(self, context: ConnectionContext, call_next: CallNext) -> None: ...


def extract_token(context: ConnectionContext, cookie_name: Optional[str] = None) -> Optional[str]:
    """Cookie first, then the explicit auth payload, then a Bearer header."""
    token = context.cookies.get(cookie_name or settings.ACCESS_TOKEN_COOKIE)
    if token:
        return token

    token = context.auth.get("token")
    if token:
        return str(token)

    header = context.headers.get("authorization") or context.headers.get("Authorization")
    if header and header.startswith("Bearer "):
        return header[len("Bearer "):]
    return None


class TokenAuthGatekeeper:
    """Admits connections carrying a valid access token for a live session."""

    def __init__(
        self,
        directory: IdentityDirectory,
        secret: Optional[str] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._directory = directory
        self._secret = secret
        self._clock = clock

    async def apply(self, context: ConnectionContext, call_next: CallNext) -> None:
        token = extract_token(context)
        if not token:
            raise AuthenticationError("Authentication error: Missing token")

        try:
            payload = verify_access_token(token, secret=self._secret)
        except jwt.InvalidTokenError as e:
            logger.error(f"Socket auth error: {e}")
            raise AuthenticationError("Authentication error: Invalid token")

        user = await self._directory.get_user(payload.user_id)
        session = await self._directory.get_session(payload.session_id)
        if user is None or session is None:
            raise AuthenticationError("Authentication error: User or session not found")

        if session.expired_at < self._clock():
            raise AuthenticationError("Authentication error: Session expired")

        context.user = user
        context.session = session
        logger.info(f"Socket authenticated: {user.email} ({context.connection_id})")
        await call_next()


class GatekeeperChain:
    """Runs gatekeepers in order; admission requires every one to continue."""

    def __init__(self, gatekeepers: Sequence[Gatekeeper]) -> None:
        self._gatekeepers = list(gatekeepers)

    async def admit(self, context: ConnectionContext) -> None:
        """
        Raises:
            AuthenticationError: the connection must be refused
        """
        admitted = False

        async def run(index: int) -> None:
            nonlocal admitted
            if index == len(self._gatekeepers):
                admitted = True
                return
            await self._gatekeepers[index].apply(context, lambda: run(index + 1))

        try:
            await run(0)
        except AuthenticationError:
            raise
        except Exception as e:
            logger.error(f"Socket auth error: {e}")
            raise AuthenticationError(GENERIC_REJECTION) from e

        if not admitted:
            raise AuthenticationError(GENERIC_REJECTION)
