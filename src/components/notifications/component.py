"""
Notification sender component.

Builds the service's emails (confirmation request, confirmed/unsubscribed
notice, operator milestone warning) from localized strings and hands them
to an EmailPort. Every message carries text and HTML bodies, a Message-ID
and a List-Unsubscribe header pointing back at the service.
"""

from __future__ import annotations

import html
import logging
from email.utils import make_msgid
from urllib.parse import quote

from src.components.backends.models import Action
from src.components.lists.models import MailingList
from src.components.notifications.models import NotificationKind
from src.components.subscription.models import PendingRequest
from src.components.subscription.ports import ListRegistryPort
from src.core.ports.email import EmailAddress, EmailMessage, EmailPort, EmailResult
from src.core.strings import get_strings, normalize_language
from src.rules.models import Rules

logger = logging.getLogger(__name__)


def build_confirmation_url(public_url: str, token_key: str) -> str:
    return f"{public_url}/confirm?token={quote(token_key, safe='')}"


class NotificationSender:
    def __init__(
        self,
        email_port: EmailPort,
        rules: Rules,
        lists: ListRegistryPort | None = None,
    ) -> None:
        self.email_port = email_port
        self.rules = rules
        self.lists = lists

    # --- Helpers ---

    def _language(self, lang: str | None, mailing_list: str | None = None) -> str:
        """The list's configured locale wins over the visitor's language."""
        if mailing_list and self.lists is not None:
            ml = self.lists.get(mailing_list)
            if ml is not None and ml.locale:
                return normalize_language(ml.locale, self.rules.default_locale)
        return normalize_language(lang, self.rules.default_locale)

    def _list_label(self, address: str) -> str:
        if self.lists is not None:
            ml = self.lists.get(address)
            if ml is not None:
                return ml.name
        return self.rules.team or address

    def _emails(self, lang: str) -> dict[str, str]:
        return get_strings(lang, self.rules.ui_strings)["emails"]

    def _send(self, kind: NotificationKind, to: str, subject: str, text: str, body_html: str) -> EmailResult:
        message = EmailMessage(
            recipient=EmailAddress(to),
            subject=subject,
            body_html=body_html,
            body_text=text,
            headers={
                "List-Unsubscribe": f"<{self.rules.public_url}>",
                "Message-ID": make_msgid(domain=self.rules.smtp.message_id_domain),
            },
        )
        try:
            result = self.email_port.send(message)
        except Exception as e:
            # Adapter broke its no-raise contract
            logger.exception("Email adapter raised while sending %s to %s", kind.value, to)
            return EmailResult.failed(to, str(e))
        logger.debug("%s email to %s: %s", kind.value, to, result.status.value)
        return result

    # --- Messages ---

    def send_confirmation_request(self, request: PendingRequest, token_key: str) -> EmailResult:
        lang = self._language(request.lang, request.mailing_list)
        strings = self._emails(lang)
        prefix = "subscribe" if request.action is Action.SUBSCRIBE else "unsubscribe"
        url = build_confirmation_url(self.rules.public_url, token_key)
        label = self._list_label(request.mailing_list)

        return self._send(
            NotificationKind.CONFIRMATION_REQUEST,
            request.email,
            strings[f"{prefix}_confirm_subject"].format(list=label),
            strings[f"{prefix}_confirm_body_text"].format(email=request.email, url=url),
            strings[f"{prefix}_confirm_body_html"].format(
                email=html.escape(request.email), url=html.escape(url)
            ),
        )

    def send_action_confirmed(self, request: PendingRequest, action: Action) -> EmailResult:
        lang = self._language(request.lang, request.mailing_list)
        strings = self._emails(lang)
        prefix = "subscribed" if action is Action.SUBSCRIBE else "unsubscribed"
        label = self._list_label(request.mailing_list)
        url = self.rules.public_url

        return self._send(
            NotificationKind.ACTION_CONFIRMED,
            request.email,
            strings[f"{prefix}_subject"].format(list=label),
            strings[f"{prefix}_body_text"].format(email=request.email, list=label, url=url),
            strings[f"{prefix}_body_html"].format(
                email=html.escape(request.email), list=html.escape(label), url=html.escape(url)
            ),
        )

    def send_milestone_warning(self, mailing_list: MailingList, count: int) -> EmailResult:
        admin = self.rules.admin_email
        if not admin:
            logger.info("No admin_email configured; milestone warning for %s not emailed", mailing_list.address)
            return EmailResult.skipped("", reason="No admin email configured")

        strings = self._emails(self.rules.default_locale)
        text = strings["subscribers_added"].format(count=count, list=mailing_list.address)
        return self._send(
            NotificationKind.MILESTONE_WARNING,
            admin,
            strings["subscribers_added_subject"].format(count=count, list=mailing_list.address),
            text,
            f"<html><body><p>{html.escape(text)}</p></body></html>",
        )
