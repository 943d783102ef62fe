"""Signed access tokens (HS256 JWT) carrying user and session ids."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from schemaboard.config import settings

ALGORITHM = "HS256"


@dataclass(frozen=True)
class AccessTokenPayload:
    user_id: str
    session_id: str


def sign_access_token(
    user_id: str,
    session_id: str,
    secret: Optional[str] = None,
    expires_in: Optional[timedelta] = None,
    audience: Optional[str] = None,
) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "userId": user_id,
        "sessionId": session_id,
        "aud": [audience or settings.JWT_AUDIENCE],
        "iat": now,
        "exp": now + (expires_in or timedelta(minutes=settings.JWT_EXPIRES_MINUTES)),
    }
    return jwt.encode(claims, secret or settings.JWT_SECRET, algorithm=ALGORITHM)


def verify_access_token(
    token: str,
    secret: Optional[str] = None,
    audience: Optional[str] = None,
) -> AccessTokenPayload:
    """Decode and validate a token.

    Raises:
        jwt.InvalidTokenError: bad signature, wrong audience, expired or
            missing claims
    """
    claims = jwt.decode(
        token,
        secret or settings.JWT_SECRET,
        algorithms=[ALGORITHM],
        audience=audience or settings.JWT_AUDIENCE,
        options={"require": ["exp", "userId", "sessionId"]},
    )
    return AccessTokenPayload(user_id=str(claims["userId"]), session_id=str(claims["sessionId"]))
