"""
Notification dispatcher factory.
Configures which delivery backend the payment flows use.
"""

from typing import Optional

from funbookr.core.config import get_settings
from funbookr.services.interfaces.notifications import NotificationDispatcher
from funbookr.services.interfaces.null_notifications import NullNotificationDispatcher
from funbookr.services.notification_service import LoggingNotificationDispatcher


def build_notification_dispatcher(backend: Optional[str] = None) -> NotificationDispatcher:
    """
    Build the dispatcher named by NOTIFICATION_BACKEND.

    - "log" (default): LoggingNotificationDispatcher
    - "null": NullNotificationDispatcher
    """
    backend = (backend or get_settings().NOTIFICATION_BACKEND).lower()

    if backend == "null":
        return NullNotificationDispatcher()
    return LoggingNotificationDispatcher()


# Singleton instance
_dispatcher: Optional[NotificationDispatcher] = None


def get_notification_dispatcher() -> NotificationDispatcher:
    """Get notification dispatcher singleton (FastAPI dependency)."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = build_notification_dispatcher()
    return _dispatcher
