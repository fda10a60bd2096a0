"""
Notification models.
"""

from __future__ import annotations

from enum import Enum


class NotificationKind(Enum):
    CONFIRMATION_REQUEST = "confirmation_request"
    ACTION_CONFIRMED = "action_confirmed"
    MILESTONE_WARNING = "milestone_warning"
