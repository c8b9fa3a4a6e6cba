"""
Gift card service: purchase, validation, balance lookup and redemption
against bookings.
"""

from typing import Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from funbookr.core.exceptions import BusinessRuleError, DomainValidationError
from funbookr.core.logging import get_logger
from funbookr.core.metrics import record_discount
from funbookr.models.booking import Booking
from funbookr.models.common import round_money, to_decimal
from funbookr.models.enums import GiftCardStatus
from funbookr.models.gift_card import GiftCard, GiftCardTransaction
from funbookr.models.user import User
from funbookr.schemas.gift_card import (
    GiftCardApplyResult,
    GiftCardBalance,
    GiftCardCreate,
    GiftCardValidationResult,
)
from funbookr.services.payment_service import is_booking_paid

logger = get_logger(__name__)

MIN_GIFT_CARD_AMOUNT = 500
MAX_GIFT_CARD_AMOUNT = 50000


def normalize_code(code: str) -> str:
    return code.strip().upper()


async def get_gift_card_by_code(db: AsyncSession, code: str) -> Optional[GiftCard]:
    result = await db.execute(select(GiftCard).where(GiftCard.code == normalize_code(code)))
    return result.scalar_one_or_none()


async def _require_gift_card(db: AsyncSession, code: str) -> GiftCard:
    gift_card = await get_gift_card_by_code(db, code)
    if not gift_card:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Gift card not found",
        )
    return gift_card


async def create_gift_card(db: AsyncSession, purchaser_id: UUID, data: GiftCardCreate) -> GiftCard:
    amount = to_decimal(data.amount)
    if amount < MIN_GIFT_CARD_AMOUNT:
        raise DomainValidationError(f"Minimum gift card amount is {MIN_GIFT_CARD_AMOUNT}")
    if amount > MAX_GIFT_CARD_AMOUNT:
        raise DomainValidationError(f"Maximum gift card amount is {MAX_GIFT_CARD_AMOUNT}")

    gift_card = GiftCard.create(
        amount=amount,
        currency=data.currency,
        purchased_by=purchaser_id,
        recipient_email=data.recipient_email,
        recipient_name=data.recipient_name,
        message=data.message,
        validity_days=data.validity_days,
    )
    db.add(gift_card)
    await db.flush()

    logger.info(
        "gift_card_created",
        gift_card_id=gift_card.id,
        code=gift_card.code,
        amount=gift_card.amount,
        purchaser_id=purchaser_id,
    )
    return gift_card


async def validate_gift_card(db: AsyncSession, code: str) -> GiftCardValidationResult:
    gift_card = await get_gift_card_by_code(db, code)
    if gift_card is None:
        logger.warning("gift_card_not_found", code=code)
        return GiftCardValidationResult.failure("Invalid gift card code")

    if gift_card.status == GiftCardStatus.CANCELLED:
        return GiftCardValidationResult.failure("This gift card has been cancelled")
    if gift_card.status == GiftCardStatus.EXPIRED:
        return GiftCardValidationResult.failure("This gift card has expired")
    if gift_card.status == GiftCardStatus.REDEEMED:
        return GiftCardValidationResult.failure("This gift card has been fully redeemed")

    if gift_card.is_expired():
        gift_card.expire()
        await db.flush()
        logger.info("gift_card_expired", code=gift_card.code)
        return GiftCardValidationResult.failure("This gift card has expired")

    if gift_card.balance <= 0:
        return GiftCardValidationResult.failure("This gift card has no remaining balance")

    return GiftCardValidationResult(
        is_valid=True,
        code=gift_card.code,
        balance=round_money(gift_card.balance),
        currency=gift_card.currency,
        expires_at=gift_card.expires_at,
    )


async def get_gift_card_balance(db: AsyncSession, code: str) -> GiftCardBalance:
    gift_card = await _require_gift_card(db, code)
    return GiftCardBalance(
        code=gift_card.code,
        balance=round_money(gift_card.balance),
        original_amount=round_money(gift_card.amount),
        currency=gift_card.currency,
        status=gift_card.status.value,
        expires_at=gift_card.expires_at,
        days_until_expiry=gift_card.days_until_expiry(),
    )


async def apply_gift_card_to_booking(
    db: AsyncSession,
    booking_id: UUID,
    code: str,
    user_id: UUID,
) -> GiftCardApplyResult:
    """
    Redeem a gift card against the caller's unpaid booking.

    Consumes up to the booking total. The booking's own pricing is left
    untouched; the ledger row records what was covered.
    """
    validation = await validate_gift_card(db, code)
    if not validation.is_valid:
        # The failed request rolls back; a lazily recorded expiry must survive it.
        await db.commit()
        raise BusinessRuleError(validation.error_message)

    gift_card = await _require_gift_card(db, code)

    booking = await db.get(Booking, booking_id)
    if not booking:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Booking {booking_id} not found",
        )
    if booking.customer_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only apply gift cards to your own bookings",
        )
    if await is_booking_paid(db, booking.id):
        raise BusinessRuleError("Cannot apply gift card to already paid booking")

    amount_used = gift_card.use(booking.total_amount, booking.id, used_by=user_id)
    db.add(
        GiftCardTransaction.create(
            gift_card_id=gift_card.id,
            booking_id=booking.id,
            amount_used=amount_used,
            balance_after=gift_card.balance,
        )
    )
    await db.flush()

    record_discount("gift_card")
    logger.info(
        "gift_card_applied",
        code=gift_card.code,
        booking_id=booking.id,
        amount=amount_used,
        remaining_balance=gift_card.balance,
    )
    return GiftCardApplyResult(
        booking_id=booking.id,
        amount_applied=round_money(amount_used),
        remaining_balance=round_money(gift_card.balance),
        gift_card_status=gift_card.status.value,
    )


async def cancel_gift_card(db: AsyncSession, code: str, user_id: UUID) -> GiftCard:
    gift_card = await _require_gift_card(db, code)
    if gift_card.purchased_by != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the purchaser can cancel a gift card",
        )

    gift_card.cancel()
    await db.flush()

    logger.info("gift_card_cancelled", code=gift_card.code, balance=gift_card.balance)
    return gift_card


async def list_user_gift_cards(db: AsyncSession, user_id: UUID) -> list[GiftCard]:
    """Cards the user bought plus cards sent to the user's email."""
    user = await db.get(User, user_id)
    conditions = [GiftCard.purchased_by == user_id]
    if user is not None and user.email:
        conditions.append(GiftCard.recipient_email == user.email)

    result = await db.execute(
        select(GiftCard)
        .where(or_(*conditions))
        .order_by(GiftCard.purchased_at.desc())
    )
    return list(result.scalars().all())
