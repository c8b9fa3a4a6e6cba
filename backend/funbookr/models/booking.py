"""
Booking model representing one customer's reservation of one activity occurrence.

Key design decisions:
- Instances are built only through Booking.create(), which validates first
- State changes go through named methods that check, then mutate
- Payment, participants and coupon usages point at the booking by id;
  the booking holds no back-references to them
- total_amount is always recomputed as max(0, subtotal - discount + tax)
"""

from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    Uuid,
)

from funbookr.core.clock import utc_today, utcnow
from funbookr.core.exceptions import BusinessRuleError, DomainValidationError, InvalidStateError
from funbookr.db.base import Base, TimestampMixin
from funbookr.models.common import (
    ZERO,
    generate_reference,
    optional_text,
    require_id,
    require_text,
    to_decimal,
)
from funbookr.models.enums import BookingStatus, string_enum

NO_SHOW_REASON = "No-show"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Uuid, primary_key=True, default=uuid4)
    booking_reference = Column(String(20), unique=True, nullable=False, index=True)
    customer_id = Column(Uuid, nullable=False, index=True)
    activity_id = Column(Uuid, nullable=False, index=True)

    booking_date = Column(Date, nullable=False)
    booking_time = Column(Time, nullable=True)
    number_of_participants = Column(Integer, nullable=False)

    # Pricing breakdown
    price_per_participant = Column(Numeric(12, 2), nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=ZERO)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=ZERO)
    total_amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    coupon_code = Column(String(50), nullable=True)
    coupon_discount_percentage = Column(Numeric(5, 2), nullable=True)

    status = Column(string_enum(BookingStatus, "booking_status"), nullable=False, default=BookingStatus.PENDING)

    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    confirmed_by = Column(Uuid, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(Uuid, nullable=True)
    cancellation_reason = Column(String(500), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    checked_in_at = Column(DateTime(timezone=True), nullable=True)

    refund_amount = Column(Numeric(12, 2), nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)
    is_no_show = Column(Boolean, nullable=False, default=False)

    special_requests = Column(Text, nullable=True)
    participant_names = Column(Text, nullable=True)
    customer_notes = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("number_of_participants > 0", name="check_booking_participants_positive"),
        CheckConstraint("discount_amount <= subtotal", name="check_booking_discount_lte_subtotal"),
        CheckConstraint("total_amount >= 0", name="check_booking_total_non_negative"),
        Index("ix_bookings_activity_date", "activity_id", "booking_date"),
    )

    @classmethod
    def create(
        cls,
        customer_id: UUID,
        activity_id: UUID,
        booking_date: date,
        number_of_participants: int,
        price_per_participant,
        booking_time: Optional[time] = None,
        currency: str = "INR",
    ) -> "Booking":
        require_id(customer_id, "Customer ID")
        require_id(activity_id, "Activity ID")

        if number_of_participants is None or number_of_participants <= 0:
            raise DomainValidationError("Number of participants must be greater than 0")

        price = to_decimal(price_per_participant)
        if price < 0:
            raise DomainValidationError("Price per participant cannot be negative")

        if booking_date < utc_today():
            raise DomainValidationError("Booking date cannot be in the past")

        subtotal = price * number_of_participants

        return cls(
            id=uuid4(),
            booking_reference=generate_reference("FB", 6),
            customer_id=customer_id,
            activity_id=activity_id,
            booking_date=booking_date,
            booking_time=booking_time,
            number_of_participants=number_of_participants,
            price_per_participant=price,
            subtotal=subtotal,
            discount_amount=ZERO,
            tax_amount=ZERO,
            total_amount=subtotal,
            currency=require_text(currency, "Currency").upper(),
            status=BookingStatus.PENDING,
            is_no_show=False,
        )

    # -- pricing ---------------------------------------------------------

    def apply_discount(
        self,
        discount_amount,
        coupon_code: Optional[str] = None,
        discount_percentage=None,
    ) -> None:
        amount = to_decimal(discount_amount)
        if amount < 0:
            raise DomainValidationError("Discount amount cannot be negative")
        if amount > self.subtotal:
            raise BusinessRuleError("Discount amount cannot exceed subtotal")

        self.discount_amount = amount
        self.coupon_code = coupon_code.strip().upper() if coupon_code and coupon_code.strip() else None
        self.coupon_discount_percentage = (
            to_decimal(discount_percentage) if discount_percentage is not None else None
        )
        self._recalculate_total()

    def apply_tax(self, tax_amount) -> None:
        amount = to_decimal(tax_amount)
        if amount < 0:
            raise DomainValidationError("Tax amount cannot be negative")

        self.tax_amount = amount
        self._recalculate_total()

    def _recalculate_total(self) -> None:
        total = to_decimal(self.subtotal) - to_decimal(self.discount_amount) + to_decimal(self.tax_amount)
        self.total_amount = max(total, ZERO)

    # -- lifecycle -------------------------------------------------------

    def confirm(self, confirmed_by: UUID) -> None:
        if self.status != BookingStatus.PENDING:
            raise InvalidStateError(f"Only pending bookings can be confirmed. Current status: {self.status.value}")
        require_id(confirmed_by, "Confirming user ID")

        self.status = BookingStatus.CONFIRMED
        self.confirmed_at = utcnow()
        self.confirmed_by = confirmed_by

    def complete(self) -> None:
        if self.status != BookingStatus.CONFIRMED:
            raise InvalidStateError(f"Only confirmed bookings can be completed. Current status: {self.status.value}")
        if self.booking_date > utc_today():
            raise InvalidStateError("Cannot complete a booking before its booking date")

        self.status = BookingStatus.COMPLETED
        self.completed_at = utcnow()

    def cancel(self, cancelled_by: Optional[UUID], reason: str) -> None:
        if not self.can_be_cancelled:
            raise InvalidStateError(f"Booking cannot be cancelled. Current status: {self.status.value}")
        reason = require_text(reason, "Cancellation reason")

        self.status = BookingStatus.CANCELLED
        self.cancelled_at = utcnow()
        self.cancelled_by = cancelled_by
        self.cancellation_reason = reason

    def process_refund(self, refund_amount) -> None:
        """
        Record a refund against a cancelled booking.

        The booking always moves to Refunded, even for a partial amount;
        the Payment row keeps the partial/full distinction.
        """
        if self.status != BookingStatus.CANCELLED:
            raise InvalidStateError("Only cancelled bookings can be refunded")

        amount = to_decimal(refund_amount)
        if amount <= 0:
            raise DomainValidationError("Refund amount must be greater than 0")
        if amount > self.total_amount:
            raise BusinessRuleError("Refund amount cannot exceed total amount")

        self.refund_amount = amount
        self.refunded_at = utcnow()
        self.status = BookingStatus.REFUNDED

    def check_in(self) -> None:
        if self.status != BookingStatus.CONFIRMED:
            raise InvalidStateError("Only confirmed bookings can be checked in")
        if self.booking_date != utc_today():
            raise InvalidStateError("Check-in is only allowed on the booking date")

        self.checked_in_at = utcnow()

    def mark_as_no_show(self) -> None:
        if self.status != BookingStatus.CONFIRMED:
            raise InvalidStateError("Only confirmed bookings can be marked as no-show")
        if self.booking_date < utc_today():
            raise InvalidStateError("Cannot mark a past booking as no-show")

        self.status = BookingStatus.CANCELLED
        self.cancelled_at = utcnow()
        self.cancellation_reason = NO_SHOW_REASON
        self.is_no_show = True

    # -- details ---------------------------------------------------------

    def add_special_requests(self, text: str) -> None:
        self.special_requests = optional_text(text)

    def add_participant_names(self, text: str) -> None:
        self.participant_names = optional_text(text)

    def add_customer_notes(self, text: str) -> None:
        self.customer_notes = optional_text(text)

    # -- queries ---------------------------------------------------------

    @property
    def can_be_cancelled(self) -> bool:
        return self.status in (BookingStatus.PENDING, BookingStatus.CONFIRMED)

    def starts_at(self) -> datetime:
        return datetime.combine(self.booking_date, self.booking_time or time.min, tzinfo=timezone.utc)

    def hours_until_booking(self, now: Optional[datetime] = None) -> float:
        now = now or utcnow()
        return (self.starts_at() - now).total_seconds() / 3600

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, ref={self.booking_reference}, status={self.status})>"


class BookingParticipant(Base, TimestampMixin):
    __tablename__ = "booking_participants"

    id = Column(Uuid, primary_key=True, default=uuid4)
    booking_id = Column(Uuid, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    age = Column(Integer, nullable=True)
    gender = Column(String(20), nullable=True)
    contact_phone = Column(String(30), nullable=True)

    @classmethod
    def create(
        cls,
        booking_id: UUID,
        name: str,
        age: Optional[int] = None,
        gender: Optional[str] = None,
        contact_phone: Optional[str] = None,
    ) -> "BookingParticipant":
        require_id(booking_id, "Booking ID")
        if age is not None and age < 0:
            raise DomainValidationError("Age cannot be negative")

        return cls(
            id=uuid4(),
            booking_id=booking_id,
            name=require_text(name, "Participant name"),
            age=age,
            gender=optional_text(gender),
            contact_phone=optional_text(contact_phone),
        )
