"""
Coupon service: code lookup, validation and application to bookings.

The Coupon entity only knows about its own validity window, usage limit
and discount math. The checks that need other rows live here:
- category applicability for the booked activity
- one use per user per coupon, via coupon_usages
"""

from typing import Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from funbookr.core.clock import as_utc, utcnow
from funbookr.core.exceptions import BusinessRuleError
from funbookr.core.logging import get_logger
from funbookr.core.metrics import record_discount
from funbookr.models.booking import Booking
from funbookr.models.common import ZERO, round_money, to_decimal
from funbookr.models.coupon import Coupon, CouponUsage
from funbookr.models.enums import DiscountType
from funbookr.schemas.coupon import CouponCreate, CouponValidationResult

logger = get_logger(__name__)


def normalize_code(code: str) -> str:
    return code.strip().upper()


async def get_coupon_by_code(db: AsyncSession, code: str) -> Optional[Coupon]:
    result = await db.execute(select(Coupon).where(Coupon.code == normalize_code(code)))
    return result.scalar_one_or_none()


async def create_coupon(db: AsyncSession, coupon_data: CouponCreate) -> Coupon:
    if await get_coupon_by_code(db, coupon_data.code):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Coupon code {normalize_code(coupon_data.code)} already exists",
        )

    coupon = Coupon.create(
        code=coupon_data.code,
        discount_type=coupon_data.discount_type,
        discount_value=coupon_data.discount_value,
        valid_from=coupon_data.valid_from,
        valid_until=coupon_data.valid_until,
        description=coupon_data.description,
        min_order_amount=coupon_data.min_order_amount,
        max_discount_amount=coupon_data.max_discount_amount,
        usage_limit=coupon_data.usage_limit,
        applicable_category_ids=coupon_data.applicable_category_ids,
    )
    db.add(coupon)
    await db.flush()

    logger.info("coupon_created", coupon_id=coupon.id, code=coupon.code, type=coupon.discount_type.value)
    return coupon


async def has_user_used_coupon(db: AsyncSession, coupon_id: UUID, user_id: UUID) -> bool:
    query = select(
        exists().where(CouponUsage.coupon_id == coupon_id, CouponUsage.user_id == user_id)
    )
    return bool((await db.execute(query)).scalar())


def _unusable_reason(coupon: Coupon) -> str:
    if not coupon.is_active:
        return "This coupon is no longer active"

    now = utcnow()
    if now < as_utc(coupon.valid_from):
        return f"This coupon is not valid until {coupon.valid_from:%b %d, %Y}"
    if coupon.usage_limit_reached:
        return "This coupon has reached its usage limit"
    return "This coupon has expired"


async def validate_coupon(
    db: AsyncSession,
    code: str,
    order_amount,
    user_id: UUID,
    category_id: Optional[UUID] = None,
) -> CouponValidationResult:
    """
    Validate a coupon code for one user and order amount.

    Returns a failure result (not an exception) for every expected
    rejection so callers can show the message as-is.
    """
    order_amount = to_decimal(order_amount)
    logger.info("coupon_validating", code=code, amount=order_amount, category_id=category_id)

    coupon = await get_coupon_by_code(db, code)
    if coupon is None:
        logger.warning("coupon_not_found", code=code)
        return CouponValidationResult.failure("Invalid coupon code")

    if not coupon.is_valid_for_usage():
        logger.warning("coupon_not_usable", code=coupon.code)
        return CouponValidationResult.failure(_unusable_reason(coupon))

    if category_id is not None and not coupon.is_applicable_to_category(category_id):
        logger.warning("coupon_category_mismatch", code=coupon.code, category_id=category_id)
        return CouponValidationResult.failure("This coupon is not applicable to this activity")

    if coupon.min_order_amount is not None and order_amount < coupon.min_order_amount:
        return CouponValidationResult.failure(
            f"Minimum order amount of {round_money(coupon.min_order_amount)} required for this coupon"
        )

    if await has_user_used_coupon(db, coupon.id, user_id):
        logger.warning("coupon_already_used", code=coupon.code, user_id=user_id)
        return CouponValidationResult.failure("You have already used this coupon")

    discount = coupon.calculate_discount(order_amount)
    if coupon.discount_type == DiscountType.PERCENTAGE:
        percentage = to_decimal(coupon.discount_value)
    elif order_amount > 0:
        percentage = round_money(discount / order_amount * 100)
    else:
        percentage = ZERO

    logger.info("coupon_valid", code=coupon.code, discount=discount)
    return CouponValidationResult(
        is_valid=True,
        coupon_id=coupon.id,
        code=coupon.code,
        discount_amount=discount,
        discount_percentage=percentage,
        discount_type=coupon.discount_type.value,
    )


async def apply_coupon_to_booking(
    db: AsyncSession,
    booking: Booking,
    code: str,
    user_id: UUID,
    category_id: Optional[UUID] = None,
) -> CouponUsage:
    """
    Validate, discount the booking, record the usage and bump the coupon count.

    Runs inside the caller's transaction; nothing is committed here.
    """
    validation = await validate_coupon(db, code, booking.subtotal, user_id, category_id)
    if not validation.is_valid:
        raise BusinessRuleError(validation.error_message)

    coupon = await db.get(Coupon, validation.coupon_id)
    booking.apply_discount(validation.discount_amount, coupon.code, validation.discount_percentage)

    usage = CouponUsage.create(
        coupon_id=coupon.id,
        booking_id=booking.id,
        user_id=user_id,
        discount_amount=validation.discount_amount,
    )
    db.add(usage)
    coupon.increment_usage()
    await db.flush()

    record_discount("coupon")
    logger.info(
        "coupon_applied",
        code=coupon.code,
        booking_id=booking.id,
        discount=validation.discount_amount,
        used_count=coupon.used_count,
    )
    return usage


async def list_available_coupons(db: AsyncSession, user_id: UUID) -> list[Coupon]:
    """Active, in-window, under-limit coupons the user has not used yet."""
    now = utcnow()
    used_by_user = select(CouponUsage.coupon_id).where(CouponUsage.user_id == user_id)
    result = await db.execute(
        select(Coupon)
        .where(
            Coupon.is_active.is_(True),
            Coupon.valid_from <= now,
            Coupon.valid_until >= now,
            Coupon.id.not_in(used_by_user),
        )
        .order_by(Coupon.valid_until.asc())
    )
    return [coupon for coupon in result.scalars().all() if not coupon.usage_limit_reached]
