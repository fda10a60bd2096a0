"""
Backend component ports.
"""

from __future__ import annotations

from typing import Protocol

from src.components.backends.models import Outcome, RemoteList


class ListRef(Protocol):
    """What a backend needs to know about a list."""

    @property
    def address(self) -> str: ...

    @property
    def list_id(self) -> str | None: ...


class BackendPort(Protocol):
    """
    Uniform capability set of a mailing-list provider.

    Implementations never raise for HTTP or transport failures; they
    report them through Outcome (or False for check_subscribed).
    """

    @property
    def name(self) -> str: ...

    def subscribe(self, mailing_list: ListRef, email: str, name: str | None = None) -> Outcome: ...

    def unsubscribe(self, mailing_list: ListRef, email: str) -> Outcome: ...

    def check_subscribed(self, mailing_list: ListRef, email: str) -> bool: ...

    def fetch_lists(self) -> list[RemoteList]: ...
