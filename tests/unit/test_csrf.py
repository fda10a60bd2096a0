"""
CSRF gate tests.

Tokens are IP-bound, reused across page loads and never consumed by
validation.
"""

import pytest

from src.adapters.clock import ManualClock
from src.app_shell.csrf import CsrfGate
from src.components.tokens import InMemoryTokenStore, TokenPayload, TokenType


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def tokens(clock: ManualClock) -> InMemoryTokenStore:
    return InMemoryTokenStore(clock=clock)


@pytest.fixture
def gate(tokens: InMemoryTokenStore) -> CsrfGate:
    return CsrfGate(tokens)


class TestIssueOrReuse:
    def test_same_ip_gets_same_token(self, gate: CsrfGate) -> None:
        assert gate.issue_or_reuse("10.0.0.1") == gate.issue_or_reuse("10.0.0.1")

    def test_different_ips_get_different_tokens(self, gate: CsrfGate) -> None:
        assert gate.issue_or_reuse("10.0.0.1") != gate.issue_or_reuse("10.0.0.2")

    def test_expired_token_is_replaced(self, gate: CsrfGate, clock: ManualClock) -> None:
        first = gate.issue_or_reuse("10.0.0.1")
        clock.advance(hours=8)

        second = gate.issue_or_reuse("10.0.0.1")

        assert second != first
        assert gate.validate(second, "10.0.0.1")
        assert not gate.validate(first, "10.0.0.1")


class TestValidate:
    def test_valid_for_issuing_ip(self, gate: CsrfGate) -> None:
        key = gate.issue_or_reuse("10.0.0.1")
        assert gate.validate(key, "10.0.0.1")

    def test_invalid_from_other_ip(self, gate: CsrfGate) -> None:
        key = gate.issue_or_reuse("10.0.0.1")
        assert not gate.validate(key, "10.0.0.99")

    def test_validation_does_not_consume(self, gate: CsrfGate, tokens: InMemoryTokenStore) -> None:
        key = gate.issue_or_reuse("10.0.0.1")

        for _ in range(5):
            assert gate.validate(key, "10.0.0.1")
        assert tokens.peek(key, TokenType.CSRF) is not None

    def test_confirmation_token_is_not_a_csrf_token(
        self, gate: CsrfGate, tokens: InMemoryTokenStore
    ) -> None:
        key = tokens.create(TokenType.SUBSCRIBE, TokenPayload(email="a@example.com", ip="10.0.0.1"))
        assert not gate.validate(key, "10.0.0.1")

    @pytest.mark.parametrize("key", [None, "", "garbage"])
    def test_missing_or_unknown(self, gate: CsrfGate, key: str | None) -> None:
        assert not gate.validate(key, "10.0.0.1")
