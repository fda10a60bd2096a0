"""
Token store component.

In-memory store of single-use opaque tokens.

Key behaviors:
- Keys from secrets.token_urlsafe(32) (256 bits, URL-safe)
- Expiry evaluated lazily on every access
- peek() is side-effect free; consume() removes atomically
- Expired entries are pruned opportunistically, never required for correctness
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta
from threading import Lock

from src.adapters.clock import SystemClock
from src.components.tokens.models import (
    DEFAULT_TTLS,
    Token,
    TokenCollisionError,
    TokenPayload,
    TokenType,
)
from src.components.tokens.ports import TimePort

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32
MAX_KEY_ATTEMPTS = 5
DEFAULT_PRUNE_THRESHOLD = 10_000


def generate_token_key(length: int = TOKEN_BYTES) -> str:
    """Generate a cryptographically secure URL-safe key."""
    return secrets.token_urlsafe(length)


class InMemoryTokenStore:
    """Process-lifetime token storage guarded by a single store lock."""

    def __init__(
        self,
        ttls: dict[TokenType, timedelta] | None = None,
        clock: TimePort | None = None,
        prune_threshold: int = DEFAULT_PRUNE_THRESHOLD,
        key_factory: Callable[[], str] = generate_token_key,
    ) -> None:
        self._ttls = {**DEFAULT_TTLS, **(ttls or {})}
        self._clock = clock if clock is not None else SystemClock()
        self._prune_threshold = prune_threshold
        self._key_factory = key_factory
        self._tokens: dict[str, Token] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    def create(self, token_type: TokenType, payload: TokenPayload) -> str:
        """Store a new token and return its key."""
        now = self._clock.now_utc()
        with self._lock:
            key = self._insert_locked(token_type, payload, now)

        logger.debug("Created %s token for %s", token_type.value, payload.email or payload.ip)
        return key

    def create_if_absent(self, token_type: TokenType, payload: TokenPayload) -> str | None:
        """
        Store a new token unless one of the same type is already pending
        for payload.email on payload.mailing_list.

        Returns the new key, or None when a pending token exists. The check
        and the insert happen under one lock acquisition.
        """
        now = self._clock.now_utc()
        with self._lock:
            if self._pending_locked(payload.email, token_type, payload.mailing_list, now):
                return None
            key = self._insert_locked(token_type, payload, now)

        logger.debug("Created %s token for %s", token_type.value, payload.email or payload.ip)
        return key

    def peek(self, key: str | None, expected_type: TokenType | None = None) -> Token | None:
        """Return the token if live and type-matching, leaving it in place."""
        if not isinstance(key, str) or not key:
            return None
        now = self._clock.now_utc()
        with self._lock:
            token = self._tokens.get(key)
        if token is None or not token.is_valid(now, expected_type):
            return None
        return token

    def consume(self, key: str | None, expected_type: TokenType | None = None) -> Token | None:
        """Return and remove the token in one step."""
        if not isinstance(key, str) or not key:
            return None
        now = self._clock.now_utc()
        with self._lock:
            token = self._tokens.get(key)
            if token is None or not token.is_valid(now, expected_type):
                return None
            del self._tokens[key]
        return token

    def has_pending(
        self,
        email: str,
        token_type: TokenType,
        mailing_list: str | None = None,
    ) -> bool:
        """Whether an unexpired token of this type is outstanding for email."""
        now = self._clock.now_utc()
        with self._lock:
            return self._pending_locked(email, token_type, mailing_list, now)

    def find(
        self,
        token_type: TokenType,
        predicate: Callable[[TokenPayload], bool],
    ) -> Token | None:
        """First live token of the given type whose payload matches."""
        now = self._clock.now_utc()
        with self._lock:
            tokens = list(self._tokens.values())
        for token in tokens:
            if token.is_valid(now, token_type) and predicate(token.payload):
                return token
        return None

    def prune_expired(self) -> int:
        """Drop expired tokens. Returns count removed."""
        with self._lock:
            return self._prune_locked()

    def clear(self) -> None:
        """Clear all tokens - useful for testing."""
        with self._lock:
            self._tokens.clear()

    def _insert_locked(self, token_type: TokenType, payload: TokenPayload, now: datetime) -> str:
        if len(self._tokens) >= self._prune_threshold:
            self._prune_locked()

        key = self._fresh_key_locked()
        self._tokens[key] = Token(
            key=key,
            type=token_type,
            payload=payload,
            created_at=now,
            expires_at=now + self._ttls[token_type],
        )
        return key

    def _pending_locked(
        self,
        email: str | None,
        token_type: TokenType,
        mailing_list: str | None,
        now: datetime,
    ) -> bool:
        return any(
            t.type == token_type
            and t.payload.email == email
            and (mailing_list is None or t.payload.mailing_list == mailing_list)
            and now < t.expires_at
            for t in self._tokens.values()
        )

    def _prune_locked(self) -> int:
        now = self._clock.now_utc()
        expired = [k for k, t in self._tokens.items() if now >= t.expires_at]
        for key in expired:
            del self._tokens[key]
        if expired:
            logger.debug("Pruned %d expired tokens", len(expired))
        return len(expired)

    def _fresh_key_locked(self) -> str:
        for _ in range(MAX_KEY_ATTEMPTS):
            key = self._key_factory()
            if key not in self._tokens:
                return key
            logger.error("Token key collision, regenerating")
        raise TokenCollisionError(MAX_KEY_ATTEMPTS)
