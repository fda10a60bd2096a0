"""
CSRF gate backed by the token store.

CSRF tokens are bound to the client IP and are never consumed on
validation, so the same token survives page reloads and resubmissions
for its whole lifetime.
"""

from src.components.tokens import TokenPayload, TokenStorePort, TokenType


class CsrfGate:
    def __init__(self, tokens: TokenStorePort) -> None:
        self._tokens = tokens

    def issue_or_reuse(self, ip: str) -> str:
        """Existing live token for ip, else a fresh one."""
        existing = self._tokens.find(TokenType.CSRF, lambda p: p.ip == ip)
        if existing is not None:
            return existing.key
        return self._tokens.create(TokenType.CSRF, TokenPayload(ip=ip))

    def validate(self, key: str | None, ip: str) -> bool:
        token = self._tokens.peek(key, TokenType.CSRF)
        return token is not None and token.payload.ip == ip
