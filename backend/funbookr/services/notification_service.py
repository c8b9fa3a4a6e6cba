"""
Notification delivery for payment outcomes.

Delivery is best effort: a failed notification is logged and counted,
never raised into the payment flow that triggered it.
"""

from decimal import Decimal
from uuid import UUID

from funbookr.core.logging import get_logger
from funbookr.core.metrics import record_notification
from funbookr.services.interfaces.notifications import NotificationDispatcher

logger = get_logger(__name__)


class LoggingNotificationDispatcher(NotificationDispatcher):
    """Emits one structured log record per notification."""

    async def send_payment_success(self, booking_id: UUID, user_id: UUID, amount: Decimal) -> None:
        logger.info(
            "notification_payment_success",
            booking_id=booking_id,
            user_id=user_id,
            amount=amount,
        )

    async def send_payment_failure(self, booking_id: UUID, user_id: UUID, reason: str) -> None:
        logger.info(
            "notification_payment_failure",
            booking_id=booking_id,
            user_id=user_id,
            reason=reason,
        )


async def dispatch_safely(kind: str, send, *args) -> bool:
    """
    Await ``send(*args)`` and swallow any failure.

    Returns True when the dispatcher accepted the notification.
    """
    try:
        await send(*args)
    except Exception as e:
        logger.error("notification_failed", kind=kind, error=str(e), exc_info=True)
        record_notification(kind, sent=False)
        return False

    record_notification(kind, sent=True)
    return True
