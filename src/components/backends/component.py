"""
Backend adapter component.

Turns a logical subscribe/unsubscribe intent into one provider HTTP call
and classifies the response:

- 2xx                      -> Outcome(success=True)
- 404 on unsubscribe       -> Outcome(not_found=True)
- other status / transport -> Outcome(success=False, message=<provider message>)

Providers are subclasses of BackendAdapter that only describe endpoints,
auth, parameters and body encoding. Shared call sites never branch on
the provider name.
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar, Literal

import httpx

from src.components.backends.models import (
    Action,
    BackendDescriptor,
    Outcome,
    RemoteList,
)
from src.components.backends.ports import ListRef

logger = logging.getLogger(__name__)

CONNECTION_ERROR = "Connection error. Please try again later."

# Keys providers use for a human-readable error message
MESSAGE_KEYS = ("message", "ErrorMessage", "error_message", "error", "detail")


def extract_message(response: httpx.Response) -> str | None:
    """Best-effort provider message from an error response body."""
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return text[:300] or None

    if isinstance(body, dict):
        for key in MESSAGE_KEYS:
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return None


class BackendAdapter:
    """
    Shared request/classify logic for all providers.

    Subclasses set kind and body_encoding and implement the endpoint and
    parameter hooks.
    """

    kind: ClassVar[str] = ""
    body_encoding: ClassVar[Literal["form", "json"]] = "form"
    default_subscribe_verb: ClassVar[str] = "POST"
    default_unsubscribe_verb: ClassVar[str] = "POST"

    def __init__(
        self,
        descriptor: BackendDescriptor,
        client: httpx.Client | None = None,
    ) -> None:
        self.descriptor = descriptor
        self._client = client if client is not None else httpx.Client()

    @property
    def name(self) -> str:
        return self.descriptor.name

    # --- Provider hooks ---

    def auth(self) -> httpx.Auth | None:
        return None

    def headers(self) -> dict[str, str]:
        return {"Accept": "application/json"}

    def subscribe_endpoint(self, mailing_list: ListRef, email: str) -> str:
        raise NotImplementedError

    def unsubscribe_endpoint(self, mailing_list: ListRef, email: str) -> str:
        return self.subscribe_endpoint(mailing_list, email)

    def build_params(
        self,
        action: Action,
        mailing_list: ListRef,
        email: str,
        name: str | None,
    ) -> dict[str, Any] | None:
        raise NotImplementedError

    def check_endpoint(self, mailing_list: ListRef, email: str) -> str:
        raise NotImplementedError

    def validate_check_response(self, body: Any, mailing_list: ListRef) -> bool:
        raise NotImplementedError

    lists_endpoint: ClassVar[str] = ""
    lists_params: ClassVar[dict[str, Any]] = {}

    def parse_lists(self, body: Any) -> list[RemoteList]:
        raise NotImplementedError

    # --- Capability set ---

    def verb(self, action: Action) -> str:
        if action is Action.SUBSCRIBE:
            return self.descriptor.subscribe_verb or self.default_subscribe_verb
        return (
            self.descriptor.unsubscribe_verb
            or self.default_unsubscribe_verb
            or self.verb(Action.SUBSCRIBE)
        )

    def subscribe(self, mailing_list: ListRef, email: str, name: str | None = None) -> Outcome:
        return self._change(Action.SUBSCRIBE, mailing_list, email, name)

    def unsubscribe(self, mailing_list: ListRef, email: str) -> Outcome:
        return self._change(Action.UNSUBSCRIBE, mailing_list, email, None)

    def check_subscribed(self, mailing_list: ListRef, email: str) -> bool:
        logger.debug("Checking if %s is subscribed to %s", email, mailing_list.address)
        try:
            response = self._send("GET", self.check_endpoint(mailing_list, email))
        except httpx.HTTPError as e:
            logger.error("%s check error for %s: %s", self.name, email, e)
            return False

        logger.debug("%s check response status: %s", self.name, response.status_code)
        if not response.is_success:
            return False
        try:
            return bool(self.validate_check_response(response.json(), mailing_list))
        except ValueError:
            logger.error("%s returned a non-JSON check response", self.name)
            return False

    def fetch_lists(self) -> list[RemoteList]:
        """
        Fetch the provider's list index.
        Raises httpx.HTTPError on transport or status failures.
        """
        response = self._send("GET", self.lists_endpoint, dict(self.lists_params) or None)
        response.raise_for_status()
        return self.parse_lists(response.json())

    def close(self) -> None:
        self._client.close()

    # --- Internals ---

    def _change(
        self,
        action: Action,
        mailing_list: ListRef,
        email: str,
        name: str | None,
    ) -> Outcome:
        if action is Action.SUBSCRIBE:
            path = self.subscribe_endpoint(mailing_list, email)
        else:
            path = self.unsubscribe_endpoint(mailing_list, email)
        params = self.build_params(action, mailing_list, email, name)
        method = self.verb(action)

        logger.info("%s %s on %s (%s)", action.value.capitalize(), email, mailing_list.address, self.name)
        logger.debug("Making %s request to %s: %s", method, path, params)

        try:
            response = self._send(method, path, params)
        except httpx.HTTPError as e:
            logger.error("%s %s error for %s: %s", self.name, action.value, email, e)
            return Outcome.failed(CONNECTION_ERROR)

        logger.debug("%s response status: %s", self.name, response.status_code)

        if response.is_success:
            logger.info("Successfully %sd %s on %s", action.value, email, mailing_list.address)
            return Outcome.ok(
                f"{email} {action.value}d to {mailing_list.address} on {self.name}",
                response.status_code,
            )

        if action is Action.UNSUBSCRIBE and response.status_code == 404:
            logger.debug("Email not found for unsubscription: %s", email)
            return Outcome.missing()

        logger.error(
            "Failed to %s %s - Status: %s Body: %s",
            action.value,
            email,
            response.status_code,
            response.text,
        )
        message = extract_message(response) or f"Failed to {action.value}. Please try again later."
        return Outcome.failed(message, response.status_code)

    def _send(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        kwargs: dict[str, Any] = {"headers": self.headers()}
        auth = self.auth()
        if auth is not None:
            kwargs["auth"] = auth

        if params is not None:
            if method.upper() == "GET":
                kwargs["params"] = params
            elif self.body_encoding == "json":
                kwargs["json"] = params
            else:
                kwargs["data"] = params

        return self._client.request(
            method.upper(),
            f"{self.descriptor.api_url}{path}",
            timeout=self.descriptor.timeout_seconds,
            **kwargs,
        )
