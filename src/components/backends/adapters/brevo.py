"""
Brevo (formerly Sendinblue) contact-list adapter.

api-key header, JSON bodies, lists addressed by numeric id.
"""

from __future__ import annotations

from typing import Any, ClassVar, Literal
from urllib.parse import quote

from src.components.backends.component import BackendAdapter
from src.components.backends.models import Action, RemoteList
from src.components.backends.ports import ListRef


def _list_id(mailing_list: ListRef) -> str:
    return mailing_list.list_id or mailing_list.address


class BrevoAdapter(BackendAdapter):
    kind: ClassVar[str] = "brevo"
    body_encoding: ClassVar[Literal["form", "json"]] = "json"

    lists_endpoint: ClassVar[str] = "/contacts/lists"
    lists_params: ClassVar[dict[str, Any]] = {"limit": 50}

    def headers(self) -> dict[str, str]:
        return {"Accept": "application/json", "api-key": self.descriptor.api_key}

    def subscribe_endpoint(self, mailing_list: ListRef, email: str) -> str:
        return f"/contacts/lists/{_list_id(mailing_list)}/contacts/add"

    def unsubscribe_endpoint(self, mailing_list: ListRef, email: str) -> str:
        return f"/contacts/lists/{_list_id(mailing_list)}/contacts/remove"

    def build_params(
        self,
        action: Action,
        mailing_list: ListRef,
        email: str,
        name: str | None,
    ) -> dict[str, Any] | None:
        return {"emails": [email]}

    def check_endpoint(self, mailing_list: ListRef, email: str) -> str:
        return f"/contacts/{quote(email, safe='')}"

    def validate_check_response(self, body: Any, mailing_list: ListRef) -> bool:
        if not isinstance(body, dict):
            return False
        wanted = str(_list_id(mailing_list))
        return any(str(i) == wanted for i in body.get("listIds") or [])

    def parse_lists(self, body: Any) -> list[RemoteList]:
        return [
            RemoteList(
                address=str(item["id"]),
                name=item.get("name") or str(item["id"]),
                list_id=str(item["id"]),
            )
            for item in (body or {}).get("lists") or []
            if item.get("id") is not None
        ]
