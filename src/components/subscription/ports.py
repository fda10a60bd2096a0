"""
Subscription pipeline ports.

Protocol interfaces for everything the pipeline talks to.
"""

from __future__ import annotations

from typing import Protocol

from src.components.backends.models import Action
from src.components.lists.models import MailingList
from src.components.subscription.models import PendingRequest
from src.core.ports.email import EmailResult


class RateLimiterPort(Protocol):
    def admit(self, ip: str) -> bool:
        """Record a request and return False if the IP is over its limit."""
        ...


class CsrfPort(Protocol):
    def validate(self, key: str | None, ip: str) -> bool:
        """True if the key is a live CSRF token issued to this IP."""
        ...


class ListRegistryPort(Protocol):
    def get(self, address: str) -> MailingList | None: ...

    def all(self) -> list[MailingList]: ...

    def increment(self, address: str) -> int: ...

    def decrement(self, address: str) -> int: ...


class NotifierPort(Protocol):
    """Outbound emails. Never raises for delivery problems."""

    def send_confirmation_request(self, request: PendingRequest, token_key: str) -> EmailResult: ...

    def send_action_confirmed(self, request: PendingRequest, action: Action) -> EmailResult: ...

    def send_milestone_warning(self, mailing_list: MailingList, count: int) -> EmailResult: ...
