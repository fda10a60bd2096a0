"""
SMTP email adapter.

Sends multipart (text + HTML) messages through an authenticated SMTP
relay with STARTTLS. Delivery problems are logged and returned as failed
EmailResults.
"""

from __future__ import annotations

import logging
import smtplib
import ssl
from email.message import EmailMessage as MimeMessage
from email.utils import make_msgid

from src.core.ports.email import EmailMessage, EmailResult
from src.rules.models import SmtpRules

logger = logging.getLogger(__name__)

DEFAULT_SENDER = "noreply@example.com"


class SMTPEmailAdapter:
    def __init__(self, rules: SmtpRules) -> None:
        self._rules = rules

    @property
    def sender(self) -> str:
        return self._rules.sender or self._rules.user or DEFAULT_SENDER

    def build_mime(self, message: EmailMessage) -> MimeMessage:
        mime = MimeMessage()
        mime["From"] = str(message.sender) if message.sender else self.sender
        mime["To"] = str(message.recipient)
        mime["Subject"] = message.subject
        if message.reply_to:
            mime["Reply-To"] = str(message.reply_to)
        for name, value in message.headers.items():
            mime[name] = value
        if "Message-ID" not in mime:
            mime["Message-ID"] = make_msgid(domain=self._rules.message_id_domain)

        mime.set_content(message.body_text or "")
        if message.body_html:
            mime.add_alternative(message.body_html, subtype="html")
        return mime

    def send(self, message: EmailMessage) -> EmailResult:
        recipient = message.recipient.email
        rules = self._rules
        if not rules.host:
            return EmailResult.failed(recipient, "SMTP host not configured")

        mime = self.build_mime(message)
        try:
            with smtplib.SMTP(rules.host, rules.port, timeout=rules.timeout_seconds) as smtp:
                if rules.use_tls:
                    smtp.starttls(context=ssl.create_default_context())
                if rules.user and rules.password:
                    smtp.login(rules.user, rules.password)
                smtp.send_message(mime)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s", recipient, e)
            return EmailResult.failed(recipient, str(e))

        logger.info("Email sent to %s: %s", recipient, message.subject)
        return EmailResult.success(recipient, mime["Message-ID"])
