"""JWT access and refresh tokens."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Literal

import jwt

from .errors import AuthenticationError
from .models import User

ALGORITHM = "HS256"

TokenType = Literal["access", "refresh"]


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    email: str
    role: str
    type: TokenType


class TokenService:
    """Issues and verifies HS256 tokens signed with one shared secret."""

    def __init__(
        self,
        secret: str,
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
    ):
        self.secret = secret
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    def _encode(self, user: User, type: TokenType, ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "sub": user.id,
            "email": user.email,
            "role": user.role.value,
            "type": type,
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(payload, self.secret, algorithm=ALGORITHM)

    def issue(self, user: User) -> TokenPair:
        return TokenPair(
            access_token=self._encode(user, "access", self.access_ttl),
            refresh_token=self._encode(user, "refresh", self.refresh_ttl),
        )

    def verify(self, token: str, expected_type: TokenType = "access") -> TokenClaims:
        """
        Decode a token and check its type.

        Raises:
            AuthenticationError: If the token is expired, malformed, badly
                signed or of the wrong type.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[ALGORITHM],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise AuthenticationError("Token expired") from e
        except jwt.InvalidTokenError as e:
            raise AuthenticationError("Invalid token") from e

        if payload.get("type") != expected_type:
            raise AuthenticationError("Invalid token type")

        return TokenClaims(
            user_id=payload["sub"],
            email=payload.get("email", ""),
            role=payload.get("role", "customer"),
            type=payload["type"],
        )
