"""
Application context: every service and store, wired once from Rules.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta

from src.adapters.clock import SystemClock
from src.adapters.dev_email import DevEmailAdapter
from src.adapters.smtp_email import SMTPEmailAdapter
from src.app_shell.csrf import CsrfGate
from src.app_shell.rate_limit import RateLimiter
from src.components.backends import BackendPort, create_backends
from src.components.lists import ListRegistry
from src.components.notifications import NotificationSender
from src.components.subscription import SubscriptionPipeline
from src.components.tokens import InMemoryTokenStore, TokenType
from src.core.ports.email import EmailPort
from src.ports.clock import ClockPort
from src.rules.models import Rules
from src.services.subscription import SubscriptionService

logger = logging.getLogger(__name__)


def build_email_port(rules: Rules) -> EmailPort:
    if rules.smtp.enabled:
        return SMTPEmailAdapter(rules.smtp)
    logger.warning("SMTP disabled; emails are logged, not sent")
    return DevEmailAdapter()


@dataclass
class AppContext:
    rules: Rules
    clock: ClockPort
    tokens: InMemoryTokenStore
    rate_limiter: RateLimiter
    csrf: CsrfGate
    lists: ListRegistry
    backends: Mapping[str, BackendPort]
    email: EmailPort
    notifier: NotificationSender
    pipeline: SubscriptionPipeline
    service: SubscriptionService

    @classmethod
    def create(
        cls,
        rules: Rules,
        *,
        backends: Mapping[str, BackendPort] | None = None,
        email: EmailPort | None = None,
        clock: ClockPort | None = None,
    ) -> AppContext:
        clock = clock or SystemClock()
        backends = backends if backends is not None else create_backends(rules)
        email = email if email is not None else build_email_port(rules)

        tokens = InMemoryTokenStore(
            ttls={
                TokenType.CSRF: timedelta(hours=rules.tokens.csrf_ttl_hours),
                TokenType.SUBSCRIBE: timedelta(hours=rules.tokens.confirmation_ttl_hours),
                TokenType.UNSUBSCRIBE: timedelta(hours=rules.tokens.confirmation_ttl_hours),
            },
            clock=clock,
            prune_threshold=rules.tokens.prune_threshold,
        )
        rate_limiter = RateLimiter(rules.rate_limit, clock)
        lists = ListRegistry(rules)
        notifier = NotificationSender(email, rules, lists)
        csrf = CsrfGate(tokens)
        pipeline = SubscriptionPipeline(
            tokens=tokens,
            rate_limiter=rate_limiter,
            csrf=csrf,
            lists=lists,
            backends=backends,
            notifier=notifier,
        )

        return cls(
            rules=rules,
            clock=clock,
            tokens=tokens,
            rate_limiter=rate_limiter,
            csrf=csrf,
            lists=lists,
            backends=backends,
            email=email,
            notifier=notifier,
            pipeline=pipeline,
            service=SubscriptionService.from_rules(pipeline, rules.pipeline),
        )

    def refresh_lists(self) -> int:
        return self.lists.refresh(self.backends)

    def start(self) -> None:
        self.refresh_lists()
        self.service.start()

    def stop(self) -> None:
        self.service.stop()
        for backend in self.backends.values():
            close = getattr(backend, "close", None)
            if close is not None:
                close()
