"""
Payment service: creating the payment for a booking, retries and refunds.

Gateway-driven state changes (captured / failed) arrive through
webhook_service; this module covers the customer-driven side.
"""

import secrets
from decimal import Decimal
from typing import Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from funbookr.core.config import get_settings
from funbookr.core.exceptions import BusinessRuleError, InvalidStateError
from funbookr.core.logging import get_logger
from funbookr.core.metrics import record_payment_event, refunded_amount
from funbookr.models.booking import Booking
from funbookr.models.enums import BookingStatus, PaymentStatus
from funbookr.models.payment import Payment

logger = get_logger(__name__)

SETTLED_STATUSES = (PaymentStatus.COMPLETED, PaymentStatus.PARTIALLY_REFUNDED, PaymentStatus.REFUNDED)


def generate_refund_transaction_id() -> str:
    return f"REFUND_TXN_{secrets.token_hex(8).upper()}"


async def get_payment_for_booking(db: AsyncSession, booking_id: UUID) -> Optional[Payment]:
    result = await db.execute(select(Payment).where(Payment.booking_id == booking_id))
    return result.scalar_one_or_none()


async def find_payment_by_gateway_ids(
    db: AsyncSession,
    order_id: Optional[str],
    transaction_id: Optional[str],
) -> Optional[Payment]:
    """Resolve by gateway order id first, then by gateway transaction id."""
    if order_id:
        result = await db.execute(select(Payment).where(Payment.gateway_order_id == order_id))
        payment = result.scalar_one_or_none()
        if payment:
            return payment

    if transaction_id:
        result = await db.execute(select(Payment).where(Payment.gateway_transaction_id == transaction_id))
        return result.scalars().first()

    return None


async def is_booking_paid(db: AsyncSession, booking_id: UUID) -> bool:
    payment = await get_payment_for_booking(db, booking_id)
    return payment is not None and payment.status in SETTLED_STATUSES


async def _get_owned_booking(db: AsyncSession, booking_id: UUID, user_id: UUID) -> Booking:
    booking = await db.get(Booking, booking_id)
    if not booking:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Booking {booking_id} not found",
        )
    if booking.customer_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only pay for your own bookings",
        )
    return booking


async def initiate_payment(
    db: AsyncSession,
    booking_id: UUID,
    user_id: UUID,
    gateway_order_id: str,
) -> Payment:
    """
    Create the Payment row for a pending booking.

    The gateway order itself is created client-side; we only keep its id so
    the webhook can find this payment again.
    """
    booking = await _get_owned_booking(db, booking_id, user_id)

    if booking.status != BookingStatus.PENDING:
        raise InvalidStateError(f"Payment can only be initiated for pending bookings. Current status: {booking.status.value}")
    if booking.total_amount <= 0:
        raise BusinessRuleError("Booking has nothing to pay")

    if await get_payment_for_booking(db, booking.id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A payment already exists for this booking",
        )

    payment = Payment.create(
        booking_id=booking.id,
        amount=booking.total_amount,
        payment_gateway=get_settings().PAYMENT_GATEWAY,
        currency=booking.currency,
    )
    payment.set_gateway_order_id(gateway_order_id)
    db.add(payment)
    await db.flush()

    record_payment_event("initiated")
    logger.info(
        "payment_initiated",
        payment_id=payment.id,
        booking_id=booking.id,
        amount=payment.amount,
        gateway_order_id=gateway_order_id,
    )
    return payment


async def get_payment(db: AsyncSession, payment_id: UUID, user_id: UUID) -> Payment:
    payment = await db.get(Payment, payment_id)
    if not payment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Payment {payment_id} not found",
        )
    await _get_owned_booking(db, payment.booking_id, user_id)
    return payment


async def retry_payment(
    db: AsyncSession,
    payment_id: UUID,
    user_id: UUID,
    gateway_order_id: Optional[str] = None,
) -> Payment:
    payment = await get_payment(db, payment_id, user_id)

    if not payment.can_be_retried():
        logger.warning(
            "payment_retry_rejected",
            payment_id=payment.id,
            status=payment.status.value,
            attempts=payment.retry_attempts,
        )
        raise BusinessRuleError("Payment cannot be retried")

    payment.retry()
    if gateway_order_id:
        payment.set_gateway_order_id(gateway_order_id)
    await db.flush()

    record_payment_event("retried")
    logger.info("payment_retried", payment_id=payment.id, attempts=payment.retry_attempts)
    return payment


def refund_payment(payment: Payment, amount: Decimal, reason: str) -> str:
    """
    Apply a full or partial refund to the payment and return the refund id.

    Amounts equal to what is left become a full refund.
    """
    refund_txn = generate_refund_transaction_id()
    if amount >= payment.remaining_amount:
        amount = payment.remaining_amount
        payment.process_full_refund(refund_txn, reason)
    else:
        payment.process_partial_refund(amount, refund_txn, reason)

    record_payment_event("refunded")
    refunded_amount.inc(float(amount))
    logger.info(
        "payment_refunded",
        payment_id=payment.id,
        amount=amount,
        refund_transaction_id=refund_txn,
        status=payment.status.value,
    )
    return refund_txn
