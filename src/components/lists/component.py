"""
List registry component.

Holds the lists the service accepts requests for. The table is rebuilt
wholesale by refresh(): lists reported by each configured backend, plus
lists declared statically in the rules file, filtered by the include and
exclude expressions, with per-list overrides from the rules applied.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from threading import Lock

import httpx

from src.components.backends.models import RemoteList
from src.components.backends.ports import BackendPort
from src.components.lists.models import MailingList, UnknownListError
from src.rules.models import Rules

logger = logging.getLogger(__name__)


class ListRegistry:
    def __init__(self, rules: Rules) -> None:
        self._rules = rules
        self._include = re.compile(rules.lists_include_regexp) if rules.lists_include_regexp else None
        self._exclude = re.compile(rules.lists_exclude_regexp) if rules.lists_exclude_regexp else None
        self._lists: dict[str, MailingList] = {}
        self._lock = Lock()

    def accepts(self, address: str) -> bool:
        """True if the address passes the include/exclude expressions."""
        if self._exclude is not None and self._exclude.search(address):
            return False
        if self._include is not None and not self._include.search(address):
            return False
        return True

    def refresh(self, backends: Mapping[str, BackendPort]) -> int:
        """
        Rebuild the table. Returns the number of registered lists.

        A backend whose list index cannot be fetched is logged and skipped;
        its statically configured lists are still registered.
        """
        found: dict[str, MailingList] = {}

        for backend_name, backend in backends.items():
            try:
                remote = backend.fetch_lists()
            except (httpx.HTTPError, ValueError, KeyError) as e:
                logger.error("Could not fetch lists from backend %s: %s", backend_name, e)
                continue
            for item in remote:
                found[item.address] = self._build(item, backend_name)

        default_backend = next(iter(backends)) if len(backends) == 1 else None
        for static in self._rules.lists:
            if static.address in found:
                continue
            backend_name = static.backend or default_backend
            if backend_name is None:
                logger.warning("List %s has no backend; skipping", static.address)
                continue
            item = RemoteList(
                address=static.address,
                name=static.name or static.address,
                list_id=static.list_id,
            )
            found[static.address] = self._build(item, backend_name)

        accepted = {a: ml for a, ml in found.items() if self.accepts(a)}
        with self._lock:
            self._lists = accepted

        logger.info("Information from mailing lists retrieved (%d lists)", len(accepted))
        return len(accepted)

    def _build(self, item: RemoteList, backend_name: str) -> MailingList:
        override = self._rules.list_rules(item.address)
        ml = MailingList(
            address=item.address,
            name=item.name,
            backend=backend_name,
            description=item.description,
            list_id=item.list_id,
            warn_every=self._rules.warn_every(item.address),
        )
        if override is not None:
            ml.name = override.name or ml.name
            ml.description = override.description or ml.description
            ml.list_id = override.list_id or ml.list_id
            ml.locale = override.locale
        return ml

    def get(self, address: str) -> MailingList | None:
        with self._lock:
            return self._lists.get(address)

    def require(self, address: str) -> MailingList:
        ml = self.get(address)
        if ml is None:
            raise UnknownListError(address)
        return ml

    def all(self) -> list[MailingList]:
        with self._lock:
            return sorted(self._lists.values(), key=lambda ml: ml.address)

    def increment(self, address: str) -> int:
        """Count one confirmed subscription; returns the new count."""
        with self._lock:
            ml = self._lists.get(address)
            if ml is None:
                raise UnknownListError(address)
            ml.members_new += 1
            return ml.members_new

    def decrement(self, address: str) -> int:
        """Count one confirmed unsubscription; returns the new count."""
        with self._lock:
            ml = self._lists.get(address)
            if ml is None:
                raise UnknownListError(address)
            ml.members_new -= 1
            return ml.members_new

    def __len__(self) -> int:
        with self._lock:
            return len(self._lists)
