"""
Mailjet contacts-list adapter.

Basic auth (key, secret), JSON bodies, one managecontact endpoint for both
actions.
"""

from __future__ import annotations

from typing import Any, ClassVar, Literal
from urllib.parse import quote

import httpx

from src.components.backends.component import BackendAdapter
from src.components.backends.models import Action, RemoteList
from src.components.backends.ports import ListRef

ACTIONS = {Action.SUBSCRIBE: "addnoforce", Action.UNSUBSCRIBE: "unsub"}


def _list_id(mailing_list: ListRef) -> str:
    return mailing_list.list_id or mailing_list.address


class MailjetAdapter(BackendAdapter):
    kind: ClassVar[str] = "mailjet"
    body_encoding: ClassVar[Literal["form", "json"]] = "json"

    lists_endpoint: ClassVar[str] = "/contactslist"
    lists_params: ClassVar[dict[str, Any]] = {"Limit": 100}

    def auth(self) -> httpx.Auth | None:
        return httpx.BasicAuth(self.descriptor.api_key, self.descriptor.api_secret)

    def subscribe_endpoint(self, mailing_list: ListRef, email: str) -> str:
        return f"/contactslist/{_list_id(mailing_list)}/managecontact"

    def build_params(
        self,
        action: Action,
        mailing_list: ListRef,
        email: str,
        name: str | None,
    ) -> dict[str, Any] | None:
        params: dict[str, Any] = {"Email": email, "Action": ACTIONS[action]}
        if name:
            params["Name"] = name
        return params

    def check_endpoint(self, mailing_list: ListRef, email: str) -> str:
        return f"/contact/{quote(email, safe='')}/getcontactslists"

    def validate_check_response(self, body: Any, mailing_list: ListRef) -> bool:
        if not isinstance(body, dict):
            return False
        wanted = str(_list_id(mailing_list))
        return any(
            str(entry.get("ListID")) == wanted and not entry.get("IsUnsub")
            for entry in body.get("Data") or []
        )

    def parse_lists(self, body: Any) -> list[RemoteList]:
        lists = []
        for item in (body or {}).get("Data") or []:
            if item.get("ID") is None:
                continue
            list_id = str(item["ID"])
            lists.append(
                RemoteList(
                    address=item.get("Address") or list_id,
                    name=item.get("Name") or list_id,
                    list_id=list_id,
                )
            )
        return lists
