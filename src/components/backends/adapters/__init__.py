"""
Provider registry.

BACKEND_KINDS is the closed set of supported providers; adding one means
adding a BackendAdapter subclass here.
"""

from __future__ import annotations

import httpx

from src.components.backends.component import BackendAdapter
from src.components.backends.models import BackendDescriptor
from src.rules.models import Rules

from .brevo import BrevoAdapter
from .mailgun import MailgunAdapter
from .mailjet import MailjetAdapter

BACKEND_KINDS: dict[str, type[BackendAdapter]] = {
    MailgunAdapter.kind: MailgunAdapter,
    BrevoAdapter.kind: BrevoAdapter,
    MailjetAdapter.kind: MailjetAdapter,
}


def create_backend(
    descriptor: BackendDescriptor,
    client: httpx.Client | None = None,
) -> BackendAdapter:
    """Build the adapter for a descriptor. Raises ValueError for unknown kinds."""
    try:
        adapter_cls = BACKEND_KINDS[descriptor.kind]
    except KeyError:
        raise ValueError(f"Unknown backend kind: {descriptor.kind}") from None
    return adapter_cls(descriptor, client=client)


def create_backends(
    rules: Rules,
    client: httpx.Client | None = None,
) -> dict[str, BackendAdapter]:
    """One adapter per configured backend, keyed by backend name."""
    return {
        b.backend_name: create_backend(BackendDescriptor.from_rules(b), client=client)
        for b in rules.backends
    }


__all__ = [
    "BACKEND_KINDS",
    "BrevoAdapter",
    "MailgunAdapter",
    "MailjetAdapter",
    "create_backend",
    "create_backends",
]
