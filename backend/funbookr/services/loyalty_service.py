"""
Loyalty service: the points ledger and the per-user aggregate.

Every change to a user's points writes one LoyaltyPoint row and updates
UserLoyaltyStatus in the same unit of work.
"""

import math
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from funbookr.core.exceptions import BusinessRuleError, DomainValidationError
from funbookr.core.logging import get_logger
from funbookr.core.metrics import record_discount
from funbookr.models.booking import Booking
from funbookr.models.common import ZERO, round_money, to_decimal
from funbookr.models.enums import BookingStatus
from funbookr.models.loyalty import (
    EARNED,
    REDEEMED,
    LoyaltyPoint,
    UserLoyaltyStatus,
    next_tier,
    points_required_for,
)
from funbookr.schemas.loyalty import LoyaltyRedeemResult, LoyaltyStatusResponse

logger = get_logger(__name__)

POINTS_PER_CURRENCY_UNIT = 1
POINTS_FOR_FIRST_BOOKING = 250
MIN_REDEEMABLE_POINTS = 100
POINTS_TO_CURRENCY_RATIO = Decimal("0.25")  # 100 points = 25.00


async def get_loyalty_record(db: AsyncSession, user_id: UUID) -> Optional[UserLoyaltyStatus]:
    result = await db.execute(select(UserLoyaltyStatus).where(UserLoyaltyStatus.user_id == user_id))
    return result.scalar_one_or_none()


async def award_points(
    db: AsyncSession,
    user_id: UUID,
    points: int,
    reference_type: Optional[str] = None,
    reference_id: Optional[UUID] = None,
    description: Optional[str] = None,
) -> UserLoyaltyStatus:
    """Credit points, creating the user's loyalty record on first award."""
    loyalty = await get_loyalty_record(db, user_id)
    if loyalty is None:
        loyalty = UserLoyaltyStatus.create(user_id)
        db.add(loyalty)

    previous_tier = loyalty.current_tier
    loyalty.add_points(points)
    db.add(
        LoyaltyPoint.create(
            user_id=user_id,
            points=points,
            transaction_type=EARNED,
            reference_type=reference_type,
            reference_id=reference_id,
            description=description,
        )
    )
    await db.flush()

    logger.info(
        "loyalty_points_awarded",
        user_id=user_id,
        points=points,
        reference_type=reference_type,
        available=loyalty.available_points,
    )
    if loyalty.current_tier != previous_tier:
        logger.info(
            "loyalty_tier_upgraded",
            user_id=user_id,
            from_tier=previous_tier.value,
            to_tier=loyalty.current_tier.value,
        )
    return loyalty


async def redeem_points(
    db: AsyncSession,
    user_id: UUID,
    points: int,
    booking_id: Optional[UUID] = None,
) -> LoyaltyRedeemResult:
    if points is None or points <= 0:
        raise DomainValidationError("Points must be positive")
    if points < MIN_REDEEMABLE_POINTS:
        raise BusinessRuleError(f"Minimum {MIN_REDEEMABLE_POINTS} points required for redemption")

    loyalty = await get_loyalty_record(db, user_id)
    if loyalty is None:
        raise BusinessRuleError("User has no loyalty points")
    if points > loyalty.available_points:
        raise BusinessRuleError(f"Insufficient points. Available: {loyalty.available_points}")

    loyalty.redeem_points(points)
    discount = round_money(points * POINTS_TO_CURRENCY_RATIO)
    db.add(
        LoyaltyPoint.create(
            user_id=user_id,
            points=-points,
            transaction_type=REDEEMED,
            reference_type="booking" if booking_id else None,
            reference_id=booking_id,
            description=f"Redeemed for {discount} discount",
        )
    )
    await db.flush()

    record_discount("loyalty")
    logger.info(
        "loyalty_points_redeemed",
        user_id=user_id,
        points=points,
        discount=discount,
        remaining=loyalty.available_points,
    )
    return LoyaltyRedeemResult(
        points_redeemed=points,
        discount_amount=discount,
        remaining_points=loyalty.available_points,
    )


async def get_loyalty_status(db: AsyncSession, user_id: UUID) -> LoyaltyStatusResponse:
    loyalty = await get_loyalty_record(db, user_id)
    if loyalty is None:
        # Not persisted; users without any activity read as a fresh Bronze record.
        loyalty = UserLoyaltyStatus.create(user_id)

    upcoming = next_tier(loyalty.current_tier)
    points_to_next = None
    if upcoming is not None:
        points_to_next = max(0, points_required_for(upcoming) - loyalty.total_points)

    return LoyaltyStatusResponse(
        user_id=user_id,
        current_tier=loyalty.current_tier.value,
        total_points=loyalty.total_points,
        available_points=loyalty.available_points,
        lifetime_points=loyalty.lifetime_points,
        discount_percentage=loyalty.get_discount_percentage(),
        next_tier=upcoming.value if upcoming else None,
        points_to_next_tier=points_to_next,
        tier_upgraded_at=loyalty.tier_upgraded_at,
    )


async def get_loyalty_history(
    db: AsyncSession,
    user_id: UUID,
    limit: int = 50,
) -> list[LoyaltyPoint]:
    result = await db.execute(
        select(LoyaltyPoint)
        .where(LoyaltyPoint.user_id == user_id)
        .order_by(LoyaltyPoint.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def award_booking_points(db: AsyncSession, booking: Booking) -> int:
    """
    Award points for a completed booking. Returns the points awarded.

    Never raises: a loyalty failure must not undo the booking completion.
    The award runs in a savepoint, so a failed flush discards only the
    loyalty rows and leaves the session usable for the caller.
    """
    try:
        async with db.begin_nested():
            has_earlier_completion = (
                await db.execute(
                    select(
                        exists().where(
                            Booking.customer_id == booking.customer_id,
                            Booking.id != booking.id,
                            Booking.status == BookingStatus.COMPLETED,
                        )
                    )
                )
            ).scalar()

            awarded = 0
            booking_points = math.floor(to_decimal(booking.total_amount) * POINTS_PER_CURRENCY_UNIT)
            if booking_points > 0:
                await award_points(
                    db,
                    booking.customer_id,
                    booking_points,
                    reference_type="booking",
                    reference_id=booking.id,
                    description=f"Booking completed - {booking.booking_reference}",
                )
                awarded += booking_points

            if not has_earlier_completion:
                await award_points(
                    db,
                    booking.customer_id,
                    POINTS_FOR_FIRST_BOOKING,
                    reference_type="first_booking_bonus",
                    reference_id=booking.id,
                    description="First booking bonus",
                )
                awarded += POINTS_FOR_FIRST_BOOKING
    except Exception as e:
        logger.error("loyalty_booking_points_failed", booking_id=booking.id, error=str(e), exc_info=True)
        return 0

    logger.info("loyalty_booking_points_awarded", booking_id=booking.id, points=awarded)
    return awarded


async def calculate_loyalty_discount(db: AsyncSession, user_id: UUID, booking_amount) -> Decimal:
    """Tier discount on ``booking_amount``; zero for users without a loyalty record."""
    loyalty = await get_loyalty_record(db, user_id)
    if loyalty is None:
        return ZERO

    percentage = loyalty.get_discount_percentage()
    return round_money(to_decimal(booking_amount) * percentage / 100)
