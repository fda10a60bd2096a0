"""
Token component ports.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Protocol

from src.components.tokens.models import Token, TokenPayload, TokenType


class TimePort(Protocol):
    """Port for time operations - enables deterministic testing."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...


class TokenStorePort(Protocol):
    """
    Token store interface.

    consume() must be an atomic check-and-remove: of two concurrent
    callers holding the same key, exactly one receives the payload.
    create_if_absent() checks for a pending token and inserts in one step,
    so concurrent requests for the same address issue a single token.
    """

    def create(self, token_type: TokenType, payload: TokenPayload) -> str: ...

    def create_if_absent(self, token_type: TokenType, payload: TokenPayload) -> str | None: ...

    def peek(self, key: str | None, expected_type: TokenType | None = None) -> Token | None: ...

    def consume(self, key: str | None, expected_type: TokenType | None = None) -> Token | None: ...

    def has_pending(
        self,
        email: str,
        token_type: TokenType,
        mailing_list: str | None = None,
    ) -> bool: ...

    def find(
        self,
        token_type: TokenType,
        predicate: Callable[[TokenPayload], bool],
    ) -> Token | None: ...
