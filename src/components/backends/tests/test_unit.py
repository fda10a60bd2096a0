"""
Backend component unit tests.

Provider HTTP is served by httpx.MockTransport; a small stateful fake
provider checks that a successful subscribe/unsubscribe is visible through
check_subscribed.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from urllib.parse import parse_qs, unquote

import httpx
import pytest

from src.components.backends import (
    BACKEND_KINDS,
    CONNECTION_ERROR,
    BackendDescriptor,
    BrevoAdapter,
    MailgunAdapter,
    MailjetAdapter,
    RemoteList,
    create_backend,
    create_backends,
)
from src.rules.models import Rules


@dataclass(frozen=True)
class FakeList:
    address: str
    list_id: str | None = None


NEWS = FakeList(address="news@lists.example.com")
BREVO_LIST = FakeList(address="7", list_id="7")
MAILJET_LIST = FakeList(address="news@lists.mailjet.com", list_id="1234")


def _descriptor(kind: str, **overrides) -> BackendDescriptor:
    values = {
        "name": kind,
        "kind": kind,
        "api_url": f"https://api.{kind}.test/v3",
        "api_key": "key-123",
        "api_secret": "secret-456",
    }
    values.update(overrides)
    return BackendDescriptor(**values)


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


class Recorder:
    """MockTransport handler returning a fixed response and keeping requests."""

    def __init__(self, status_code: int = 200, body=None) -> None:
        self.status_code = status_code
        self.body = body if body is not None else {"message": "ok"}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


class TestRegistry:
    def test_all_kinds_registered(self) -> None:
        assert set(BACKEND_KINDS) == {"mailgun", "brevo", "mailjet"}

    def test_create_backend_picks_class(self) -> None:
        assert isinstance(create_backend(_descriptor("brevo")), BrevoAdapter)

    def test_unknown_kind(self) -> None:
        with pytest.raises(ValueError, match="Unknown backend kind"):
            create_backend(_descriptor("listmonk"))

    def test_create_backends_keyed_by_name(self) -> None:
        rules = Rules.model_validate(
            {
                "backends": [
                    {"kind": "mailgun", "api_url": "https://api.mailgun.net/v3", "api_key": "k"},
                    {
                        "kind": "mailjet",
                        "name": "mj",
                        "api_url": "https://api.mailjet.com/v3/REST",
                        "api_key": "k",
                        "api_secret": "s",
                    },
                ]
            }
        )
        backends = create_backends(rules)
        assert set(backends) == {"mailgun", "mj"}
        assert backends["mj"].name == "mj"


class TestMailgun:
    def test_subscribe_request_shape(self) -> None:
        rec = Recorder()
        adapter = MailgunAdapter(_descriptor("mailgun"), client=_client(rec))

        outcome = adapter.subscribe(NEWS, "a@example.com", "Ada")

        assert outcome.success
        req = rec.last
        assert req.method == "POST"
        assert req.url.path == "/v3/lists/news@lists.example.com/members"
        form = parse_qs(req.content.decode())
        assert form == {
            "address": ["a@example.com"],
            "subscribed": ["yes"],
            "upsert": ["yes"],
            "name": ["Ada"],
        }
        assert req.headers["authorization"].startswith("Basic ")

    def test_unsubscribe_uses_delete_on_member(self) -> None:
        rec = Recorder()
        adapter = MailgunAdapter(_descriptor("mailgun"), client=_client(rec))

        assert adapter.unsubscribe(NEWS, "a+b@example.com").success
        assert rec.last.method == "DELETE"
        assert unquote(rec.last.url.raw_path.decode()).endswith("/members/a+b@example.com")

    def test_unsubscribe_404_is_not_found(self) -> None:
        adapter = MailgunAdapter(_descriptor("mailgun"), client=_client(Recorder(404)))

        outcome = adapter.unsubscribe(NEWS, "gone@example.com")

        assert not outcome.success
        assert outcome.not_found

    def test_subscribe_404_is_plain_failure(self) -> None:
        rec = Recorder(404, {"message": "List not found"})
        adapter = MailgunAdapter(_descriptor("mailgun"), client=_client(rec))

        outcome = adapter.subscribe(NEWS, "a@example.com")

        assert not outcome.success
        assert not outcome.not_found
        assert outcome.message == "List not found"

    def test_configured_verb_overrides_default(self) -> None:
        rec = Recorder()
        adapter = MailgunAdapter(
            _descriptor("mailgun", subscribe_verb="PUT"), client=_client(rec)
        )
        adapter.subscribe(NEWS, "a@example.com")
        assert rec.last.method == "PUT"

    def test_check_subscribed(self) -> None:
        rec = Recorder(body={"member": {"address": "a@example.com", "subscribed": True}})
        adapter = MailgunAdapter(_descriptor("mailgun"), client=_client(rec))

        assert adapter.check_subscribed(NEWS, "a@example.com") is True
        assert rec.last.method == "GET"

    def test_check_subscribed_false_when_unsubscribed_member(self) -> None:
        rec = Recorder(body={"member": {"subscribed": False}})
        adapter = MailgunAdapter(_descriptor("mailgun"), client=_client(rec))
        assert adapter.check_subscribed(NEWS, "a@example.com") is False

    def test_fetch_lists(self) -> None:
        rec = Recorder(
            body={
                "items": [
                    {"address": "news@lists.example.com", "name": "News", "description": "Weekly"},
                    {"address": "dev@lists.example.com", "name": ""},
                ]
            }
        )
        adapter = MailgunAdapter(_descriptor("mailgun"), client=_client(rec))

        lists = adapter.fetch_lists()

        assert lists == [
            RemoteList("news@lists.example.com", "News", "Weekly"),
            RemoteList("dev@lists.example.com", "dev@lists.example.com", ""),
        ]
        assert rec.last.url.path == "/v3/lists/pages"


class TestBrevo:
    def test_subscribe_is_json_with_api_key_header(self) -> None:
        rec = Recorder(201)
        adapter = BrevoAdapter(_descriptor("brevo"), client=_client(rec))

        assert adapter.subscribe(BREVO_LIST, "a@example.com").success
        req = rec.last
        assert req.url.path == "/v3/contacts/lists/7/contacts/add"
        assert req.headers["api-key"] == "key-123"
        assert json.loads(req.content) == {"emails": ["a@example.com"]}

    def test_unsubscribe_endpoint(self) -> None:
        rec = Recorder()
        adapter = BrevoAdapter(_descriptor("brevo"), client=_client(rec))

        adapter.unsubscribe(BREVO_LIST, "a@example.com")

        assert rec.last.method == "POST"
        assert rec.last.url.path == "/v3/contacts/lists/7/contacts/remove"

    def test_check_subscribed_looks_at_list_ids(self) -> None:
        rec = Recorder(body={"email": "a@example.com", "listIds": [3, 7]})
        adapter = BrevoAdapter(_descriptor("brevo"), client=_client(rec))

        assert adapter.check_subscribed(BREVO_LIST, "a@example.com") is True
        assert adapter.check_subscribed(FakeList("9", "9"), "a@example.com") is False

    def test_error_message_extracted(self) -> None:
        rec = Recorder(400, {"code": "invalid_parameter", "message": "Contact already in list"})
        adapter = BrevoAdapter(_descriptor("brevo"), client=_client(rec))

        outcome = adapter.subscribe(BREVO_LIST, "a@example.com")

        assert outcome.message == "Contact already in list"
        assert outcome.status_code == 400

    def test_fetch_lists_uses_id_as_address(self) -> None:
        rec = Recorder(body={"lists": [{"id": 7, "name": "Newsletter"}]})
        adapter = BrevoAdapter(_descriptor("brevo"), client=_client(rec))

        assert adapter.fetch_lists() == [RemoteList("7", "Newsletter", list_id="7")]


class TestMailjet:
    def test_manage_contact_actions(self) -> None:
        rec = Recorder(201)
        adapter = MailjetAdapter(_descriptor("mailjet"), client=_client(rec))

        adapter.subscribe(MAILJET_LIST, "a@example.com", "Ada")
        body = json.loads(rec.last.content)
        assert rec.last.url.path == "/v3/contactslist/1234/managecontact"
        assert body == {"Email": "a@example.com", "Action": "addnoforce", "Name": "Ada"}

        adapter.unsubscribe(MAILJET_LIST, "a@example.com")
        assert json.loads(rec.last.content)["Action"] == "unsub"

    def test_check_ignores_unsubscribed_entries(self) -> None:
        rec = Recorder(
            body={"Data": [{"ListID": 1234, "IsUnsub": True}, {"ListID": 99, "IsUnsub": False}]}
        )
        adapter = MailjetAdapter(_descriptor("mailjet"), client=_client(rec))
        assert adapter.check_subscribed(MAILJET_LIST, "a@example.com") is False

    def test_non_json_error_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="")

        adapter = MailjetAdapter(_descriptor("mailjet"), client=_client(handler))

        outcome = adapter.subscribe(MAILJET_LIST, "a@example.com")

        assert outcome.message == "Failed to subscribe. Please try again later."


class TestTransportFailures:
    @pytest.fixture
    def adapter(self) -> MailgunAdapter:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        return MailgunAdapter(_descriptor("mailgun"), client=_client(handler))

    def test_timeout_is_backend_failure(self, adapter: MailgunAdapter) -> None:
        outcome = adapter.subscribe(NEWS, "a@example.com")
        assert not outcome.success
        assert outcome.message == CONNECTION_ERROR

    def test_check_is_false(self, adapter: MailgunAdapter) -> None:
        assert adapter.check_subscribed(NEWS, "a@example.com") is False

    def test_fetch_lists_raises(self, adapter: MailgunAdapter) -> None:
        with pytest.raises(httpx.HTTPError):
            adapter.fetch_lists()


class FakeMailgun:
    """Stateful in-memory Mailgun members API."""

    def __init__(self) -> None:
        self.members: dict[str, set[str]] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        parts = unquote(request.url.path).split("/")
        # /v3/lists/<address>/members[/<email>]
        address = parts[3]
        members = self.members.setdefault(address, set())
        if request.method == "POST":
            email = parse_qs(request.content.decode())["address"][0]
            members.add(email)
            return httpx.Response(200, json={"message": "Mailing list member has been created"})
        email = parts[5]
        if email not in members:
            return httpx.Response(404, json={"message": "Member not found"})
        if request.method == "DELETE":
            members.discard(email)
            return httpx.Response(200, json={"message": "Mailing list member has been deleted"})
        return httpx.Response(200, json={"member": {"address": email, "subscribed": True}})


class TestRoundTrip:
    def test_subscribe_then_check_then_unsubscribe(self) -> None:
        fake = FakeMailgun()
        adapter = MailgunAdapter(_descriptor("mailgun"), client=_client(fake))

        assert adapter.check_subscribed(NEWS, "a@example.com") is False
        assert adapter.subscribe(NEWS, "a@example.com").success
        assert adapter.check_subscribed(NEWS, "a@example.com") is True
        assert adapter.unsubscribe(NEWS, "a@example.com").success
        assert adapter.check_subscribed(NEWS, "a@example.com") is False
        assert adapter.unsubscribe(NEWS, "a@example.com").not_found
