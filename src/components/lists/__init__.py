"""
Lists component - registry of subscribable mailing lists.
"""

from .component import ListRegistry
from .models import MailingList, UnknownListError

__all__ = [
    "ListRegistry",
    "MailingList",
    "UnknownListError",
]
