"""
Null notification dispatcher - drops every notification.
"""

from decimal import Decimal
from uuid import UUID

from funbookr.services.interfaces.notifications import NotificationDispatcher


class NullNotificationDispatcher(NotificationDispatcher):
    """
    Use when:
    - Running tests that don't assert on notifications
    - Replaying webhooks during maintenance without contacting customers
    """

    async def send_payment_success(self, booking_id: UUID, user_id: UUID, amount: Decimal) -> None:
        pass

    async def send_payment_failure(self, booking_id: UUID, user_id: UUID, reason: str) -> None:
        pass
