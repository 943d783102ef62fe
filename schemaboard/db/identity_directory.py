"""Async read access to users and login sessions for the realtime gatekeeper."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

from sqlalchemy.orm import sessionmaker

from schemaboard.db.repositories.identity import SessionRepository, UserRepository


@dataclass(frozen=True)
class Identity:
    id: str
    name: str
    email: str


@dataclass(frozen=True)
class LoginSession:
    id: str
    user_id: str
    expired_at: datetime  # naive UTC


class IdentityDirectory(Protocol):
    async def get_user(self, user_id: str) -> Optional[Identity]: ...

    async def get_session(self, session_id: str) -> Optional[LoginSession]: ...


class SqlIdentityDirectory:
    """IdentityDirectory over the SQLAlchemy repositories.

    Rows are copied into frozen snapshots inside the worker thread so no ORM
    instance outlives its database session.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def _load_user(self, user_id: str) -> Optional[Identity]:
        with self._session_factory() as db:
            user = UserRepository(db).get_user(user_id)
            if user is None:
                return None
            return Identity(id=user.id, name=user.name, email=user.email)

    def _load_session(self, session_id: str) -> Optional[LoginSession]:
        with self._session_factory() as db:
            session = SessionRepository(db).get_session(session_id)
            if session is None:
                return None
            return LoginSession(id=session.id, user_id=session.user_id, expired_at=session.expired_at)

    async def get_user(self, user_id: str) -> Optional[Identity]:
        return await asyncio.to_thread(self._load_user, user_id)

    async def get_session(self, session_id: str) -> Optional[LoginSession]:
        return await asyncio.to_thread(self._load_session, session_id)
