"""
Unit tests for SMTPEmailAdapter (smtplib patched).
"""

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from src.adapters.smtp_email import SMTPEmailAdapter
from src.core.ports.email import EmailAddress, EmailMessage, EmailStatus
from src.rules.models import SmtpRules


@pytest.fixture
def rules() -> SmtpRules:
    return SmtpRules(
        host="smtp.example.com",
        port=587,
        user="mailer",
        password="pw",
        sender="News <noreply@example.com>",
        message_id_domain="lists.example.com",
    )


def _message() -> EmailMessage:
    return EmailMessage(
        recipient=EmailAddress("user@example.com"),
        subject="Hello",
        body_html="<p>Hi</p>",
        body_text="Hi",
        headers={"List-Unsubscribe": "<https://example.com/news>"},
    )


class TestBuildMime:
    def test_headers(self, rules: SmtpRules) -> None:
        mime = SMTPEmailAdapter(rules).build_mime(_message())

        assert mime["From"] == "News <noreply@example.com>"
        assert mime["To"] == "user@example.com"
        assert mime["List-Unsubscribe"] == "<https://example.com/news>"
        assert mime["Message-ID"].endswith("@lists.example.com>")

    def test_multipart_alternative(self, rules: SmtpRules) -> None:
        mime = SMTPEmailAdapter(rules).build_mime(_message())

        assert mime.get_content_type() == "multipart/alternative"
        types = [part.get_content_type() for part in mime.iter_parts()]
        assert types == ["text/plain", "text/html"]


class TestSend:
    def test_starttls_login_send(self, rules: SmtpRules) -> None:
        with patch("src.adapters.smtp_email.smtplib.SMTP") as smtp_cls:
            smtp = MagicMock()
            smtp_cls.return_value.__enter__.return_value = smtp

            result = SMTPEmailAdapter(rules).send(_message())

        assert result.status == EmailStatus.SENT
        smtp_cls.assert_called_once_with("smtp.example.com", 587, timeout=30.0)
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("mailer", "pw")
        smtp.send_message.assert_called_once()

    def test_smtp_error_is_failed_result(self, rules: SmtpRules) -> None:
        with patch("src.adapters.smtp_email.smtplib.SMTP") as smtp_cls:
            smtp = MagicMock()
            smtp.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
            smtp_cls.return_value.__enter__.return_value = smtp

            result = SMTPEmailAdapter(rules).send(_message())

        assert result.status == EmailStatus.FAILED
        assert not result.delivered

    def test_connection_refused(self, rules: SmtpRules) -> None:
        with patch("src.adapters.smtp_email.smtplib.SMTP", side_effect=ConnectionRefusedError()):
            result = SMTPEmailAdapter(rules).send(_message())
        assert result.status == EmailStatus.FAILED

    def test_missing_host(self) -> None:
        result = SMTPEmailAdapter(SmtpRules()).send(_message())
        assert result.status == EmailStatus.FAILED
        assert "host" in result.error
