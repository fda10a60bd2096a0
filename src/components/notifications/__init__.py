"""
Notifications component - outbound transactional emails.
"""

from .component import NotificationSender, build_confirmation_url
from .models import NotificationKind

__all__ = [
    "NotificationKind",
    "NotificationSender",
    "build_confirmation_url",
]
