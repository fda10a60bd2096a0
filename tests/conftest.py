from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from src.adapters.clock import ManualClock
from src.adapters.dev_backend import InMemoryBackend
from src.adapters.dev_email import DevEmailAdapter
from src.api.main import create_app
from src.components.backends import RemoteList
from src.rules.loader import parse_rules
from src.rules.models import Rules
from src.services.context import AppContext

NEWS = "news@lists.example.com"


@pytest.fixture
def rules() -> Rules:
    """Rules for a single dev backend with one list; SMTP off."""
    return parse_rules(
        {
            "base_url": "https://example.com",
            "base_path": "/newsletter",
            "admin_email": "admin@example.com",
            "warn_every_x_subscribers": 2,
            "smtp": {"enabled": False},
            "rate_limit": {"window_seconds": 3600, "max_requests": 5},
        },
        environ={},
    )


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend(lists=[RemoteList(NEWS, "News", "Monthly news")])


@pytest.fixture
def dev_email() -> DevEmailAdapter:
    return DevEmailAdapter()


@pytest.fixture
def test_ctx(rules, backend, dev_email, clock) -> AppContext:
    """
    Creates a full AppContext backed by the in-memory backend and dev email.
    """
    return AppContext.create(rules, backends={"dev": backend}, email=dev_email, clock=clock)


@pytest.fixture
def client(rules, test_ctx) -> Iterator[TestClient]:
    """Test client with the lifespan running (lists refreshed, service started)."""
    app = create_app(rules, context=test_ctx)
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
