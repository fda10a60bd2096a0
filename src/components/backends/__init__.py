"""
Backend component - uniform access to remote mailing-list providers.
"""

from .adapters import (
    BACKEND_KINDS,
    BrevoAdapter,
    MailgunAdapter,
    MailjetAdapter,
    create_backend,
    create_backends,
)
from .component import (
    CONNECTION_ERROR,
    BackendAdapter,
    extract_message,
)
from .models import (
    Action,
    BackendDescriptor,
    Outcome,
    RemoteList,
)
from .ports import (
    BackendPort,
    ListRef,
)

__all__ = [
    # Adapters
    "BackendAdapter",
    "BACKEND_KINDS",
    "BrevoAdapter",
    "MailgunAdapter",
    "MailjetAdapter",
    "create_backend",
    "create_backends",
    "extract_message",
    "CONNECTION_ERROR",
    # Models
    "Action",
    "BackendDescriptor",
    "Outcome",
    "RemoteList",
    # Ports
    "BackendPort",
    "ListRef",
]
