"""
List registry models.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class MailingList:
    """
    A subscribable list as known to this service.

    address is the public identifier used in forms and tokens. members_new
    counts confirmed subscriptions since the last refresh (unsubscriptions
    count down); it is not the list's real size.
    """

    address: str
    name: str
    backend: str
    description: str = ""
    list_id: str | None = None
    locale: str | None = None
    members_new: int = 0
    warn_every: int = 100


class UnknownListError(LookupError):
    """No list is registered under the given address."""

    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__(f"Unknown mailing list: {address}")
