"""
Dev email adapter.

Logs emails instead of sending them and keeps them in memory so tests
can read confirmation links back out of the message body. Selected when
SMTP is disabled in the rules file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from threading import Lock
from uuid import uuid4

from src.core.ports.email import EmailMessage, EmailResult

logger = logging.getLogger(__name__)


@dataclass
class SentEmail:
    """Record of a logged email for test assertions."""

    id: str
    recipient: str
    subject: str
    body_html: str
    body_text: str
    sender: str | None
    headers: dict[str, str]
    logged_at: datetime


@dataclass
class DevEmailAdapter:
    """
    Email adapter that logs instead of sending.

    Returns SKIPPED results, which callers treat as delivered.
    """

    sent_emails: list[SentEmail] = field(default_factory=list)
    log_level: int = logging.INFO
    log_body: bool = True
    body_preview_length: int = 100
    _lock: Lock = field(default_factory=Lock, repr=False)

    def send(self, message: EmailMessage) -> EmailResult:
        message_id = message.headers.get("Message-ID") or f"dev-{uuid4().hex[:12]}"
        recipient = message.recipient.email
        sender = str(message.sender) if message.sender else None

        with self._lock:
            self.sent_emails.append(
                SentEmail(
                    id=message_id,
                    recipient=recipient,
                    subject=message.subject,
                    body_html=message.body_html,
                    body_text=message.body_text,
                    sender=sender,
                    headers=dict(message.headers),
                    logged_at=datetime.now(UTC),
                )
            )

        self._log_email(recipient, message.subject, message.body_text, message_id, sender)
        return EmailResult.skipped(recipient, message_id, "Dev mode - email logged, not sent")

    def _log_email(
        self,
        recipient: str,
        subject: str,
        body: str,
        message_id: str,
        sender: str | None = None,
    ) -> None:
        parts = [f"EMAIL (dev): To={recipient}", f"Subject={subject}"]
        if sender:
            parts.append(f"From={sender}")
        if self.log_body and body:
            preview = body[: self.body_preview_length]
            if len(body) > self.body_preview_length:
                preview += "..."
            parts.append(f"Body={preview}")
        parts.append(f"MessageID={message_id}")
        logger.log(self.log_level, ", ".join(parts))

    # --- Test Helper Methods ---

    def get_last_email(self) -> SentEmail | None:
        with self._lock:
            return self.sent_emails[-1] if self.sent_emails else None

    def get_emails_to(self, recipient: str) -> list[SentEmail]:
        with self._lock:
            return [e for e in self.sent_emails if e.recipient == recipient]

    def clear(self) -> None:
        with self._lock:
            self.sent_emails.clear()

    @property
    def email_count(self) -> int:
        return len(self.sent_emails)
