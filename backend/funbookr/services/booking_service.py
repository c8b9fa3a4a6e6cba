"""
Booking service: creation, lifecycle transitions and customer cancellation.

All functions work inside the caller's session; the request-scoped
get_db dependency commits on success and rolls back on any exception, so a
booking, its participants and its coupon usage land together or not at all.

CANCELLATION REFUND POLICY
==========================

Only bookings with a settled payment are refunded. The share depends on
how far away the activity start is at the moment of cancellation:

  - 48 hours or more:  100 %
  - 24 to 48 hours:     50 %
  - under 24 hours:      0 %

A refund moves the booking to Refunded and applies a full or partial
refund to the Payment with a generated REFUND_TXN_ id.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from funbookr.core.logging import get_logger
from funbookr.core.metrics import record_booking_transition
from funbookr.models.booking import Booking, BookingParticipant
from funbookr.models.common import ZERO, round_money, to_decimal
from funbookr.models.enums import BookingStatus
from funbookr.schemas.booking import BookingCancelResponse, BookingCreate
from funbookr.services.coupon_service import apply_coupon_to_booking
from funbookr.services.loyalty_service import award_booking_points
from funbookr.services.payment_service import get_payment_for_booking, refund_payment

logger = get_logger(__name__)

FULL_REFUND_HOURS = 48
PARTIAL_REFUND_HOURS = 24


def refund_percentage_for(hours_until_booking: float) -> int:
    if hours_until_booking >= FULL_REFUND_HOURS:
        return 100
    if hours_until_booking >= PARTIAL_REFUND_HOURS:
        return 50
    return 0


async def create_booking(db: AsyncSession, customer_id: UUID, booking_data: BookingCreate) -> Booking:
    """
    Create a pending booking with its participants.

    An optional coupon is validated and applied before tax so the tax
    figure supplied by the caller sits on top of the discounted subtotal.
    """
    booking = Booking.create(
        customer_id=customer_id,
        activity_id=booking_data.activity_id,
        booking_date=booking_data.booking_date,
        number_of_participants=booking_data.number_of_participants,
        price_per_participant=booking_data.price_per_participant,
        booking_time=booking_data.booking_time,
        currency=booking_data.currency,
    )
    if booking_data.special_requests:
        booking.add_special_requests(booking_data.special_requests)
    if booking_data.customer_notes:
        booking.add_customer_notes(booking_data.customer_notes)

    db.add(booking)
    await db.flush()

    if booking_data.participants:
        for participant in booking_data.participants:
            db.add(
                BookingParticipant.create(
                    booking_id=booking.id,
                    name=participant.name,
                    age=participant.age,
                    gender=participant.gender,
                    contact_phone=participant.contact_phone,
                )
            )
        booking.add_participant_names(", ".join(p.name for p in booking_data.participants))

    if booking_data.coupon_code:
        await apply_coupon_to_booking(
            db,
            booking,
            booking_data.coupon_code,
            customer_id,
            category_id=booking_data.category_id,
        )

    if booking_data.tax_amount is not None:
        booking.apply_tax(booking_data.tax_amount)

    await db.flush()

    record_booking_transition(BookingStatus.PENDING.value)
    logger.info(
        "booking_created",
        booking_id=booking.id,
        reference=booking.booking_reference,
        customer_id=customer_id,
        activity_id=booking.activity_id,
        participants=booking.number_of_participants,
        total=booking.total_amount,
    )
    return booking


async def get_booking(db: AsyncSession, booking_id: UUID) -> Booking:
    booking = await db.get(Booking, booking_id)
    if not booking:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Booking {booking_id} not found",
        )
    return booking


async def get_customer_booking(db: AsyncSession, booking_id: UUID, customer_id: UUID) -> Booking:
    booking = await get_booking(db, booking_id)
    if booking.customer_id != customer_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to access this booking",
        )
    return booking


async def get_user_bookings(
    db: AsyncSession,
    customer_id: UUID,
    status_filter: Optional[BookingStatus] = None,
) -> list[Booking]:
    """Get all bookings for a customer, newest first."""
    query = select(Booking).where(Booking.customer_id == customer_id)
    if status_filter is not None:
        query = query.where(Booking.status == status_filter)
    result = await db.execute(query.order_by(Booking.created_at.desc()))
    return list(result.scalars().all())


async def confirm_booking(db: AsyncSession, booking_id: UUID, actor_id: UUID) -> Booking:
    booking = await get_booking(db, booking_id)
    booking.confirm(actor_id)
    await db.flush()

    record_booking_transition(booking.status.value)
    logger.info("booking_confirmed", booking_id=booking.id, confirmed_by=actor_id)
    return booking


async def complete_booking(db: AsyncSession, booking_id: UUID) -> Booking:
    booking = await get_booking(db, booking_id)
    booking.complete()
    await db.flush()

    record_booking_transition(booking.status.value)
    logger.info("booking_completed", booking_id=booking.id)

    await award_booking_points(db, booking)
    return booking


async def check_in_booking(db: AsyncSession, booking_id: UUID) -> Booking:
    booking = await get_booking(db, booking_id)
    booking.check_in()
    await db.flush()

    logger.info("booking_checked_in", booking_id=booking.id)
    return booking


async def mark_booking_no_show(db: AsyncSession, booking_id: UUID) -> Booking:
    booking = await get_booking(db, booking_id)
    booking.mark_as_no_show()
    await db.flush()

    record_booking_transition("no_show")
    logger.info("booking_no_show", booking_id=booking.id)
    return booking


async def cancel_booking(
    db: AsyncSession,
    booking_id: UUID,
    customer_id: UUID,
    reason: str,
    now: Optional[datetime] = None,
) -> BookingCancelResponse:
    """Cancel the customer's own booking and refund per the cancellation policy."""
    booking = await get_customer_booking(db, booking_id, customer_id)

    hours_until = booking.hours_until_booking(now)
    payment = await get_payment_for_booking(db, booking.id)
    paid = payment is not None and payment.can_be_refunded()

    percentage = refund_percentage_for(hours_until) if paid else 0
    refund_amount: Decimal = ZERO
    if percentage:
        refund_amount = round_money(to_decimal(booking.total_amount) * percentage / 100)

    booking.cancel(customer_id, reason)
    record_booking_transition(booking.status.value)

    if refund_amount > 0:
        booking.process_refund(refund_amount)
        refund_reason = "Cancelled by customer" if percentage == 100 else "Partial refund - cancelled by customer"
        refund_payment(payment, refund_amount, refund_reason)
        record_booking_transition(booking.status.value)

    await db.flush()

    logger.info(
        "booking_cancelled",
        booking_id=booking.id,
        customer_id=customer_id,
        hours_until_booking=round(hours_until, 1),
        paid=paid,
        refund_amount=refund_amount,
        refund_percentage=percentage,
    )

    if refund_amount > 0:
        message = f"Booking cancelled successfully. Refund of {refund_amount} ({percentage}%) will be processed."
    else:
        message = "Booking cancelled successfully. No refund applicable."

    return BookingCancelResponse(
        message=message,
        booking_id=booking.id,
        status=booking.status.value,
        refund_amount=refund_amount,
        refund_percentage=percentage,
    )
