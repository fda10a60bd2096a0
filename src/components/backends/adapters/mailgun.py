"""
Mailgun mailing-list adapter.

Basic auth ("api", <key>), form-encoded bodies, lists addressed by their
list address.
"""

from __future__ import annotations

from typing import Any, ClassVar, Literal
from urllib.parse import quote

import httpx

from src.components.backends.component import BackendAdapter
from src.components.backends.models import Action, RemoteList
from src.components.backends.ports import ListRef


class MailgunAdapter(BackendAdapter):
    kind: ClassVar[str] = "mailgun"
    body_encoding: ClassVar[Literal["form", "json"]] = "form"
    default_unsubscribe_verb: ClassVar[str] = "DELETE"

    lists_endpoint: ClassVar[str] = "/lists/pages"
    lists_params: ClassVar[dict[str, Any]] = {"limit": 100}

    def auth(self) -> httpx.Auth | None:
        return httpx.BasicAuth("api", self.descriptor.api_key)

    def _member_path(self, mailing_list: ListRef, email: str) -> str:
        return f"/lists/{mailing_list.address}/members/{quote(email, safe='')}"

    def subscribe_endpoint(self, mailing_list: ListRef, email: str) -> str:
        return f"/lists/{mailing_list.address}/members"

    def unsubscribe_endpoint(self, mailing_list: ListRef, email: str) -> str:
        return self._member_path(mailing_list, email)

    def build_params(
        self,
        action: Action,
        mailing_list: ListRef,
        email: str,
        name: str | None,
    ) -> dict[str, Any] | None:
        if action is Action.UNSUBSCRIBE:
            return None
        params = {"address": email, "subscribed": "yes", "upsert": "yes"}
        if name:
            params["name"] = name
        return params

    def check_endpoint(self, mailing_list: ListRef, email: str) -> str:
        return self._member_path(mailing_list, email)

    def validate_check_response(self, body: Any, mailing_list: ListRef) -> bool:
        member = body.get("member") if isinstance(body, dict) else None
        return bool(member and member.get("subscribed"))

    def parse_lists(self, body: Any) -> list[RemoteList]:
        return [
            RemoteList(
                address=item["address"],
                name=item.get("name") or item["address"],
                description=item.get("description") or "",
            )
            for item in (body or {}).get("items", [])
            if item.get("address")
        ]
