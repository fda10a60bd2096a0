"""
Email port.

Protocol-based interface for sending the service's transactional emails
(confirmation requests, confirmations, operator warnings).

Implementations:
1. SMTPEmailAdapter: sends through an SMTP relay (production)
2. DevEmailAdapter: logs and captures emails in memory (dev/test)

Both must never raise for delivery problems; they report them through
EmailResult.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol


class EmailStatus(Enum):
    """Email send result status."""

    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"  # Dev adapter


@dataclass(frozen=True)
class EmailAddress:
    """
    Email address with optional display name.

    Examples:
        EmailAddress("user@example.com")
        EmailAddress("user@example.com", "Ada Lovelace")
    """

    email: str
    name: str | None = None

    def __str__(self) -> str:
        """Format as RFC 5322 address."""
        if self.name:
            safe_name = self.name.replace('"', '\\"')
            return f'"{safe_name}" <{self.email}>'
        return self.email


@dataclass(frozen=True)
class EmailMessage:
    """
    Email message to be sent.

    Carries both HTML and plain text alternatives. headers holds extra
    headers such as List-Unsubscribe and Message-ID.
    """

    recipient: EmailAddress
    subject: str
    body_html: str
    body_text: str
    sender: EmailAddress | None = None  # None = use adapter default
    reply_to: EmailAddress | None = None
    headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.recipient.email:
            raise ValueError("Recipient email is required")
        if not self.subject:
            raise ValueError("Subject is required")
        if not self.body_html and not self.body_text:
            raise ValueError("At least one of body_html or body_text is required")


@dataclass
class EmailResult:
    """Result of an email send attempt."""

    status: EmailStatus
    message_id: str | None = None
    error: str | None = None
    sent_at: datetime | None = None
    recipient: str = ""

    @property
    def delivered(self) -> bool:
        """True unless the send failed (dev captures count as delivered)."""
        return self.status is not EmailStatus.FAILED

    @classmethod
    def success(cls, recipient: str, message_id: str | None = None) -> EmailResult:
        return cls(
            status=EmailStatus.SENT,
            message_id=message_id,
            recipient=recipient,
            sent_at=datetime.now(UTC),
        )

    @classmethod
    def skipped(cls, recipient: str, message_id: str | None = None, reason: str = "Dev mode") -> EmailResult:
        return cls(
            status=EmailStatus.SKIPPED,
            message_id=message_id,
            recipient=recipient,
            error=reason,
        )

    @classmethod
    def failed(cls, recipient: str, error: str) -> EmailResult:
        return cls(
            status=EmailStatus.FAILED,
            recipient=recipient,
            error=error,
        )


class EmailPort(Protocol):
    """Email sending interface."""

    def send(self, message: EmailMessage) -> EmailResult:
        """
        Send an email message.

        Must not raise for delivery problems; return a failed result.
        """
        ...
