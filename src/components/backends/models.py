"""
Backend component models.

Uniform result and descriptor types for remote mailing-list providers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from src.rules.models import BackendRules


class Action(Enum):
    """Membership change requested from a backend."""

    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"


@dataclass(frozen=True)
class Outcome:
    """
    Result of a subscribe/unsubscribe call.

    not_found is only set for an unsubscribe the provider answered with
    404: the address is already absent, which is not a hard error.
    """

    success: bool
    not_found: bool = False
    message: str = ""
    status_code: int | None = None

    @classmethod
    def ok(cls, message: str = "", status_code: int | None = None) -> Outcome:
        return cls(success=True, message=message, status_code=status_code)

    @classmethod
    def missing(cls, message: str = "Email address not found in subscription list.") -> Outcome:
        return cls(success=False, not_found=True, message=message, status_code=404)

    @classmethod
    def failed(cls, message: str, status_code: int | None = None) -> Outcome:
        return cls(success=False, message=message, status_code=status_code)


@dataclass(frozen=True)
class BackendDescriptor:
    """Static description of one configured provider. Immutable after load."""

    name: str
    kind: str
    api_url: str
    api_key: str = ""
    api_secret: str = ""
    subscribe_verb: str | None = None
    unsubscribe_verb: str | None = None
    timeout_seconds: float = 10.0

    @classmethod
    def from_rules(cls, rules: BackendRules) -> BackendDescriptor:
        return cls(
            name=rules.backend_name,
            kind=rules.kind,
            api_url=rules.api_url,
            api_key=rules.api_key,
            api_secret=rules.api_secret,
            subscribe_verb=rules.subscribe_verb,
            unsubscribe_verb=rules.unsubscribe_verb,
            timeout_seconds=rules.timeout_seconds,
        )


@dataclass(frozen=True)
class RemoteList:
    """A mailing list as reported by a provider's list index."""

    address: str
    name: str
    description: str = ""
    list_id: str | None = None
