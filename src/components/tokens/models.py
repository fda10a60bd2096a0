"""
Token component models.

Single-use, time-limited opaque tokens carrying a typed payload.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum


class TokenType(Enum):
    """Kinds of token handed out by the store."""

    CSRF = "csrf"
    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"


# Default lifetimes per token type
DEFAULT_TTLS: dict[TokenType, timedelta] = {
    TokenType.CSRF: timedelta(hours=8),
    TokenType.SUBSCRIBE: timedelta(hours=24),
    TokenType.UNSUBSCRIBE: timedelta(hours=24),
}


@dataclass(frozen=True)
class TokenPayload:
    """
    Data bound to a token.

    Confirmation tokens carry the subscriber triple; CSRF tokens only
    carry the issuing IP.
    """

    email: str | None = None
    name: str | None = None
    mailing_list: str | None = None
    ip: str | None = None


@dataclass(frozen=True)
class Token:
    """Stored token entry."""

    key: str
    type: TokenType
    payload: TokenPayload
    created_at: datetime
    expires_at: datetime

    def is_valid(self, now: datetime, expected_type: TokenType | None = None) -> bool:
        """Valid iff unexpired and, when asked, of the expected type."""
        if now >= self.expires_at:
            return False
        return expected_type is None or self.type == expected_type


class TokenError(Exception):
    """Base token store error."""

    pass


class TokenCollisionError(TokenError):
    """A fresh random key kept colliding with live keys."""

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"Could not generate a unique token key after {attempts} attempts")
