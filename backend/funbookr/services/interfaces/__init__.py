"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .notifications import NotificationDispatcher
from .null_notifications import NullNotificationDispatcher

__all__ = ['NotificationDispatcher', 'NullNotificationDispatcher']
