"""
Token component - single-use confirmation and CSRF tokens.
"""

from .component import (
    InMemoryTokenStore,
    generate_token_key,
)
from .models import (
    DEFAULT_TTLS,
    Token,
    TokenCollisionError,
    TokenError,
    TokenPayload,
    TokenType,
)
from .ports import (
    TimePort,
    TokenStorePort,
)

__all__ = [
    # Store
    "InMemoryTokenStore",
    "generate_token_key",
    # Models
    "DEFAULT_TTLS",
    "Token",
    "TokenPayload",
    "TokenType",
    # Errors
    "TokenError",
    "TokenCollisionError",
    # Ports
    "TimePort",
    "TokenStorePort",
]
