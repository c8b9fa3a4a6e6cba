"""
Notification dispatcher interface.
Allows swapping delivery backends without touching the payment flows.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from uuid import UUID


class NotificationDispatcher(ABC):
    """
    Outbound customer notifications about payment outcomes.

    Implementations:
    - LoggingNotificationDispatcher: structured log record per notification
    - NullNotificationDispatcher: drops everything (tests, maintenance)

    Callers treat every method as fire-and-forget; see
    notification_service.dispatch_safely.
    """

    @abstractmethod
    async def send_payment_success(self, booking_id: UUID, user_id: UUID, amount: Decimal) -> None:
        """
        Tell the customer their payment went through.

        Args:
            booking_id: Booking the payment settles
            user_id: Customer to notify
            amount: Captured amount in major currency units
        """

    @abstractmethod
    async def send_payment_failure(self, booking_id: UUID, user_id: UUID, reason: str) -> None:
        """
        Tell the customer their payment failed.

        Args:
            booking_id: Booking the payment was for
            user_id: Customer to notify
            reason: Gateway-provided failure description
        """
