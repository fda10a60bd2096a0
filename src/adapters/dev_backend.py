"""
Dev mailing-list backend.

Keeps list membership in memory instead of calling a provider. Used by
`serve --dev` and by tests; implements BackendPort.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from threading import Lock

from src.components.backends.models import Action, Outcome, RemoteList
from src.components.backends.ports import ListRef

logger = logging.getLogger(__name__)

DEV_LIST = RemoteList("dev@lists.localhost", "Development list", "In-memory list for local runs")


@dataclass
class BackendCall:
    action: Action
    mailing_list: str
    email: str
    name: str | None = None


@dataclass
class InMemoryBackend:
    name: str = "dev"
    lists: list[RemoteList] = field(default_factory=lambda: [DEV_LIST])
    members: dict[str, set[str]] = field(default_factory=dict)
    calls: list[BackendCall] = field(default_factory=list)
    # Set to make every subscribe/unsubscribe fail with this message
    fail_with: str | None = None
    _lock: Lock = field(default_factory=Lock, repr=False)

    def _change(self, action: Action, mailing_list: ListRef, email: str, name: str | None) -> Outcome:
        with self._lock:
            self.calls.append(BackendCall(action, mailing_list.address, email, name))
            if self.fail_with is not None:
                return Outcome.failed(self.fail_with, 500)
            members = self.members.setdefault(mailing_list.address, set())
            if action is Action.SUBSCRIBE:
                members.add(email)
            elif email in members:
                members.discard(email)
            else:
                return Outcome.missing()
        logger.info("Dev backend: %s %s on %s", action.value, email, mailing_list.address)
        return Outcome.ok(f"{email} {action.value}d to {mailing_list.address}", 200)

    def subscribe(self, mailing_list: ListRef, email: str, name: str | None = None) -> Outcome:
        return self._change(Action.SUBSCRIBE, mailing_list, email, name)

    def unsubscribe(self, mailing_list: ListRef, email: str) -> Outcome:
        return self._change(Action.UNSUBSCRIBE, mailing_list, email, None)

    def check_subscribed(self, mailing_list: ListRef, email: str) -> bool:
        with self._lock:
            return email in self.members.get(mailing_list.address, set())

    def fetch_lists(self) -> list[RemoteList]:
        return list(self.lists)

    def calls_for(self, action: Action) -> list[BackendCall]:
        with self._lock:
            return [c for c in self.calls if c.action is action]
