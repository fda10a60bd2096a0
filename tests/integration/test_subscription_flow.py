"""
End-to-end double opt-in journeys over HTTP.

Two lists on one in-memory backend, one of them French; a real token
store, rate limiter and notification sender behind the FastAPI app.
"""

from __future__ import annotations

import re
from urllib.parse import unquote

import pytest
from fastapi.testclient import TestClient

from src.adapters.clock import ManualClock
from src.adapters.dev_backend import InMemoryBackend
from src.adapters.dev_email import DevEmailAdapter
from src.api.main import create_app
from src.components.backends import Action, RemoteList
from src.rules.loader import parse_rules
from src.services.context import AppContext

NEWS = "news@lists.example.com"
NOUVELLES = "nouvelles@lists.example.com"
ADMIN = "admin@example.com"


@pytest.fixture(params=["sync", "queued"])
def journey(request):
    rules = parse_rules(
        {
            "base_url": "https://example.com",
            "admin_email": ADMIN,
            "smtp": {"enabled": False},
            "lists": [
                {"address": NEWS, "name": "News", "warn_every": 2},
                {"address": NOUVELLES, "name": "Nouvelles", "locale": "fr"},
            ],
            "pipeline": {"mode": request.param},
        },
        environ={},
    )
    backend = InMemoryBackend(
        lists=[RemoteList(NEWS, "news"), RemoteList(NOUVELLES, "nouvelles")]
    )
    email = DevEmailAdapter()
    clock = ManualClock()
    ctx = AppContext.create(rules, backends={"dev": backend}, email=email, clock=clock)

    with TestClient(create_app(rules, context=ctx)) as client:
        yield client, backend, email, clock


def _csrf(client: TestClient, ip: str = "198.51.100.10") -> str:
    html = client.get("/", headers={"X-Forwarded-For": ip}).text
    match = re.search(r'name="csrf_token" value="([^"]+)"', html)
    assert match is not None
    return match.group(1)


def _submit(
    client: TestClient,
    email: str,
    mailing_list: str,
    action: str = "subscribe",
    ip: str = "198.51.100.10",
):
    return client.post(
        "/subscribe",
        data={
            "email": email,
            "csrf_token": _csrf(client, ip),
            "mailing_list": mailing_list,
            "action": action,
        },
        headers={"X-Forwarded-For": ip},
    )


def _confirm(client: TestClient, email_adapter: DevEmailAdapter, to: str):
    body = email_adapter.get_emails_to(to)[-1].body_text
    match = re.search(r"token=(\S+)", body)
    assert match is not None
    return client.get("/confirm", params={"token": unquote(match.group(1))})


def test_index_offers_every_list(journey) -> None:
    client, *_ = journey

    html = client.get("/").text

    assert f'<option value="{NEWS}">News</option>' in html
    assert f'<option value="{NOUVELLES}">Nouvelles</option>' in html


def test_full_subscribe_and_unsubscribe_journey(journey) -> None:
    client, backend, email, _ = journey

    assert _submit(client, "ada@example.com", NEWS).status_code == 200
    confirm_request = email.get_last_email()
    assert confirm_request.recipient == "ada@example.com"
    assert confirm_request.headers["List-Unsubscribe"] == "<https://example.com>"

    assert _confirm(client, email, "ada@example.com").status_code == 200
    assert "ada@example.com" in backend.members[NEWS]
    assert "confirmed" in email.get_last_email().subject

    # Already on the list: no second confirmation email
    sent = email.email_count
    assert _submit(client, "ada@example.com", NEWS).status_code == 200
    assert email.email_count == sent

    assert _submit(client, "ada@example.com", NEWS, action="unsubscribe").status_code == 200
    assert _confirm(client, email, "ada@example.com").status_code == 200
    assert "ada@example.com" not in backend.members[NEWS]

    assert [c.email for c in backend.calls_for(Action.SUBSCRIBE)] == ["ada@example.com"]
    assert [c.email for c in backend.calls_for(Action.UNSUBSCRIBE)] == ["ada@example.com"]


def test_french_list_sends_french_email(journey) -> None:
    client, _, email, _ = journey

    _submit(client, "zoe@example.com", NOUVELLES)

    assert "Veuillez confirmer" in email.get_last_email().subject


def test_expired_confirmation_link(journey) -> None:
    client, backend, email, clock = journey

    _submit(client, "ada@example.com", NEWS)
    clock.advance(hours=25)

    response = _confirm(client, email, "ada@example.com")

    assert response.status_code == 400
    assert NEWS not in backend.members


def test_milestone_warning_emails_admin(journey) -> None:
    client, _, email, _ = journey

    for i, who in enumerate(["a@example.com", "b@example.com"]):
        _submit(client, who, NEWS, ip=f"198.51.100.{20 + i}")
        _confirm(client, email, who)

    warnings = email.get_emails_to(ADMIN)
    assert len(warnings) == 1
    assert "2" in warnings[0].subject
