# Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from src.core.ports.email import (
    EmailAddress,
    EmailMessage,
    EmailPort,
    EmailResult,
    EmailStatus,
)

__all__ = [
    # Email
    "EmailAddress",
    "EmailMessage",
    "EmailPort",
    "EmailResult",
    "EmailStatus",
]
