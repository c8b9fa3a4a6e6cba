"""
Coupon model: a reusable discount code, plus the per-booking usage record.

Key design decisions:
- Codes are stored upper-cased and unique
- applicable_category_ids is a typed list[UUID] in memory, JSON in the DB;
  an empty list means the coupon applies to every category
- One-use-per-user is checked by the coupon service against coupon_usages,
  not by a DB constraint
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Uuid,
)

from funbookr.core.clock import as_utc, utcnow
from funbookr.core.exceptions import DomainValidationError, InvalidStateError
from funbookr.db.base import Base, TimestampMixin
from funbookr.db.types import UUIDList
from funbookr.models.common import ZERO, optional_text, require_id, require_text, round_money, to_decimal
from funbookr.models.enums import DiscountType, string_enum


def _optional_amount(value, field: str) -> Optional[Decimal]:
    if value is None:
        return None
    amount = to_decimal(value)
    if amount < 0:
        raise DomainValidationError(f"{field} cannot be negative")
    return amount


def _optional_limit(value: Optional[int]) -> Optional[int]:
    if value is not None and value <= 0:
        raise DomainValidationError("Usage limit must be greater than 0")
    return value


class Coupon(Base, TimestampMixin):
    __tablename__ = "coupons"

    id = Column(Uuid, primary_key=True, default=uuid4)
    code = Column(String(50), unique=True, nullable=False, index=True)
    description = Column(String(500), nullable=True)
    discount_type = Column(string_enum(DiscountType, "discount_type"), nullable=False)
    discount_value = Column(Numeric(12, 2), nullable=False)

    min_order_amount = Column(Numeric(12, 2), nullable=True)
    max_discount_amount = Column(Numeric(12, 2), nullable=True)

    valid_from = Column(DateTime(timezone=True), nullable=False)
    valid_until = Column(DateTime(timezone=True), nullable=False)

    usage_limit = Column(Integer, nullable=True)
    used_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    applicable_category_ids = Column(UUIDList, nullable=False, default=list)

    __table_args__ = (
        CheckConstraint("discount_value > 0", name="check_coupon_value_positive"),
        CheckConstraint("valid_from < valid_until", name="check_coupon_validity_window"),
        CheckConstraint("used_count >= 0", name="check_coupon_used_count_non_negative"),
    )

    @classmethod
    def create(
        cls,
        code: str,
        discount_type: str,
        discount_value,
        valid_from: datetime,
        valid_until: datetime,
        description: Optional[str] = None,
        min_order_amount=None,
        max_discount_amount=None,
        usage_limit: Optional[int] = None,
        applicable_category_ids: Optional[list] = None,
    ) -> "Coupon":
        code = require_text(code, "Code").upper()
        raw_type = require_text(discount_type, "Discount type").lower()
        try:
            kind = DiscountType(raw_type)
        except ValueError:
            raise DomainValidationError("Discount type must be 'percentage' or 'fixed'")

        value = to_decimal(discount_value)
        if value <= 0:
            raise DomainValidationError("Discount value must be greater than 0")
        if kind == DiscountType.PERCENTAGE and value > 100:
            raise DomainValidationError("Percentage discount cannot exceed 100")

        valid_from, valid_until = as_utc(valid_from), as_utc(valid_until)
        if valid_from >= valid_until:
            raise DomainValidationError("Valid from must be before valid until")

        return cls(
            id=uuid4(),
            code=code,
            description=optional_text(description),
            discount_type=kind,
            discount_value=value,
            min_order_amount=_optional_amount(min_order_amount, "Minimum order amount"),
            max_discount_amount=_optional_amount(max_discount_amount, "Maximum discount amount"),
            valid_from=valid_from,
            valid_until=valid_until,
            usage_limit=_optional_limit(usage_limit),
            used_count=0,
            is_active=True,
            applicable_category_ids=[UUID(str(c)) for c in (applicable_category_ids or [])],
        )

    def update(
        self,
        description: Optional[str],
        min_order_amount,
        max_discount_amount,
        usage_limit: Optional[int],
    ) -> None:
        min_amount = _optional_amount(min_order_amount, "Minimum order amount")
        max_amount = _optional_amount(max_discount_amount, "Maximum discount amount")
        limit = _optional_limit(usage_limit)

        self.description = optional_text(description)
        self.min_order_amount = min_amount
        self.max_discount_amount = max_amount
        self.usage_limit = limit

    def update_validity(self, valid_from: datetime, valid_until: datetime) -> None:
        valid_from, valid_until = as_utc(valid_from), as_utc(valid_until)
        if valid_from >= valid_until:
            raise DomainValidationError("Valid from must be before valid until")

        self.valid_from = valid_from
        self.valid_until = valid_until

    def increment_usage(self) -> None:
        self.used_count = (self.used_count or 0) + 1

    def activate(self) -> None:
        self.is_active = True

    def deactivate(self) -> None:
        self.is_active = False

    @property
    def usage_limit_reached(self) -> bool:
        return self.usage_limit is not None and self.used_count >= self.usage_limit

    def is_valid_for_usage(self, now: Optional[datetime] = None) -> bool:
        if not self.is_active:
            return False

        now = now or utcnow()
        if now < as_utc(self.valid_from) or now > as_utc(self.valid_until):
            return False

        return not self.usage_limit_reached

    def is_applicable_to_category(self, category_id: UUID) -> bool:
        if not self.applicable_category_ids:
            return True
        return category_id in self.applicable_category_ids

    def calculate_discount(self, order_amount) -> Decimal:
        if not self.is_valid_for_usage():
            raise InvalidStateError("Coupon is not valid for usage")

        order_amount = to_decimal(order_amount)
        if self.min_order_amount is not None and order_amount < self.min_order_amount:
            return ZERO

        if self.discount_type == DiscountType.PERCENTAGE:
            discount = round_money(order_amount * to_decimal(self.discount_value) / 100)
        else:
            discount = to_decimal(self.discount_value)

        if self.max_discount_amount is not None and discount > self.max_discount_amount:
            discount = to_decimal(self.max_discount_amount)

        return min(discount, order_amount)

    def __repr__(self) -> str:
        return f"<Coupon(code={self.code}, type={self.discount_type}, value={self.discount_value})>"


class CouponUsage(Base):
    """Immutable record of one coupon applied to one booking by one user."""

    __tablename__ = "coupon_usages"

    id = Column(Uuid, primary_key=True, default=uuid4)
    coupon_id = Column(Uuid, ForeignKey("coupons.id"), nullable=False, index=True)
    booking_id = Column(Uuid, ForeignKey("bookings.id"), nullable=False, index=True)
    user_id = Column(Uuid, nullable=False, index=True)
    discount_amount = Column(Numeric(12, 2), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("discount_amount >= 0", name="check_coupon_usage_discount_non_negative"),
    )

    @classmethod
    def create(cls, coupon_id: UUID, booking_id: UUID, user_id: UUID, discount_amount) -> "CouponUsage":
        require_id(coupon_id, "Coupon ID")
        require_id(booking_id, "Booking ID")
        require_id(user_id, "User ID")
        amount = to_decimal(discount_amount)
        if amount < 0:
            raise DomainValidationError("Discount amount cannot be negative")

        return cls(
            id=uuid4(),
            coupon_id=coupon_id,
            booking_id=booking_id,
            user_id=user_id,
            discount_amount=amount,
            used_at=utcnow(),
        )
