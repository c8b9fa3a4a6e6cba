"""
Payment model: monetary settlement for exactly one booking.

Key design decisions:
- Unique booking_id enforces the 1:1 relationship at the DB level
- Indexed gateway order id and transaction id: webhooks resolve by either
- refunded_amount is a running total; status is derived from it after
  every refund so Refunded/PartiallyRefunded can never disagree with it
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, Numeric, String, Text, Uuid

from funbookr.core.clock import as_utc, utcnow
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
from funbookr.models.enums import PaymentStatus, string_enum

MAX_RETRY_ATTEMPTS = 3
DEFAULT_REFUND_WINDOW_HOURS = 48

REFUNDABLE_STATUSES = (PaymentStatus.COMPLETED,)


class Payment(Base, TimestampMixin):
    __tablename__ = "payments"

    id = Column(Uuid, primary_key=True, default=uuid4)
    booking_id = Column(Uuid, nullable=False, unique=True, index=True)

    payment_reference = Column(String(30), unique=True, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    status = Column(string_enum(PaymentStatus, "payment_status"), nullable=False, default=PaymentStatus.PENDING)

    # Gateway correlation
    payment_gateway = Column(String(50), nullable=False)
    gateway_order_id = Column(String(100), nullable=True, index=True)
    gateway_transaction_id = Column(String(100), nullable=True, index=True)
    payment_method = Column(String(50), nullable=True)
    card_last4 = Column(String(4), nullable=True)
    card_brand = Column(String(30), nullable=True)

    paid_at = Column(DateTime(timezone=True), nullable=True)
    failed_at = Column(DateTime(timezone=True), nullable=True)
    failure_reason = Column(String(500), nullable=True)
    retry_attempts = Column(Integer, nullable=False, default=0)

    # Refund sub-ledger
    refunded_amount = Column(Numeric(12, 2), nullable=False, default=ZERO)
    refunded_at = Column(DateTime(timezone=True), nullable=True)
    refund_transaction_id = Column(String(100), nullable=True)
    refund_reason = Column(String(500), nullable=True)

    gateway_response = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("amount > 0", name="check_payment_amount_positive"),
        CheckConstraint("refunded_amount >= 0", name="check_payment_refunded_non_negative"),
        CheckConstraint("refunded_amount <= amount", name="check_payment_refunded_lte_amount"),
    )

    @classmethod
    def create(
        cls,
        booking_id: UUID,
        amount,
        payment_gateway: str,
        currency: str = "INR",
    ) -> "Payment":
        require_id(booking_id, "Booking ID")
        amount = to_decimal(amount)
        if amount <= 0:
            raise DomainValidationError("Amount must be greater than 0")
        gateway = require_text(payment_gateway, "Payment gateway")

        return cls(
            id=uuid4(),
            booking_id=booking_id,
            payment_reference=generate_reference("PAY", 8),
            amount=amount,
            currency=require_text(currency, "Currency").upper(),
            payment_gateway=gateway,
            status=PaymentStatus.PENDING,
            retry_attempts=0,
            refunded_amount=ZERO,
        )

    # -- derived state ---------------------------------------------------

    @property
    def is_fully_refunded(self) -> bool:
        return self.refunded_amount >= self.amount

    @property
    def is_partially_refunded(self) -> bool:
        return ZERO < self.refunded_amount < self.amount

    @property
    def remaining_amount(self) -> Decimal:
        return to_decimal(self.amount) - to_decimal(self.refunded_amount)

    def can_be_retried(self) -> bool:
        return self.status == PaymentStatus.FAILED and self.retry_attempts < MAX_RETRY_ATTEMPTS

    def can_be_refunded(self) -> bool:
        return self.status in REFUNDABLE_STATUSES and self.remaining_amount > 0

    def payment_age_hours(self, now: Optional[datetime] = None) -> float:
        if self.paid_at is None:
            return 0.0
        now = now or utcnow()
        return (now - as_utc(self.paid_at)).total_seconds() / 3600

    def is_within_refund_window(self, window_hours: int = DEFAULT_REFUND_WINDOW_HOURS) -> bool:
        return self.payment_age_hours() <= window_hours

    # -- gateway lifecycle -----------------------------------------------

    def set_gateway_order_id(self, order_id: str) -> None:
        self.gateway_order_id = require_text(order_id, "Gateway order ID")

    def mark_as_completed(
        self,
        transaction_id: str,
        payment_method: Optional[str] = None,
        card_last4: Optional[str] = None,
        card_brand: Optional[str] = None,
        gateway_response: Optional[str] = None,
    ) -> None:
        if self.status == PaymentStatus.COMPLETED:
            raise InvalidStateError("Payment is already completed")
        transaction_id = require_text(transaction_id, "Transaction ID")

        self.status = PaymentStatus.COMPLETED
        self.paid_at = utcnow()
        self.gateway_transaction_id = transaction_id
        self.payment_method = optional_text(payment_method)
        self.card_last4 = optional_text(card_last4)
        self.card_brand = optional_text(card_brand)
        self.gateway_response = optional_text(gateway_response)
        self.failed_at = None
        self.failure_reason = None

    def mark_as_failed(self, reason: str, gateway_response: Optional[str] = None) -> None:
        reason = require_text(reason, "Failure reason")

        self.status = PaymentStatus.FAILED
        self.failed_at = utcnow()
        self.failure_reason = reason
        self.gateway_response = optional_text(gateway_response)
        self.retry_attempts = (self.retry_attempts or 0) + 1

    def retry(self) -> None:
        """Move a failed payment back to Pending. Callers check can_be_retried() for the cap."""
        if self.status != PaymentStatus.FAILED:
            raise InvalidStateError("Only failed payments can be retried")

        self.status = PaymentStatus.PENDING
        self.failed_at = None
        self.failure_reason = None

    # -- refunds ---------------------------------------------------------

    def process_full_refund(self, refund_transaction_id: str, reason: str) -> None:
        self._ensure_refundable()
        self._process_refund(self.remaining_amount, refund_transaction_id, reason)

    def process_partial_refund(self, refund_amount, refund_transaction_id: str, reason: str) -> None:
        self._ensure_refundable()
        amount = to_decimal(refund_amount)
        if amount <= 0:
            raise DomainValidationError("Refund amount must be greater than 0")
        if amount > self.remaining_amount:
            raise BusinessRuleError(f"Refund amount cannot exceed remaining amount of {self.remaining_amount}")

        self._process_refund(amount, refund_transaction_id, reason)

    def _ensure_refundable(self) -> None:
        if self.status not in REFUNDABLE_STATUSES:
            raise InvalidStateError("Only completed payments can be refunded")

    def _process_refund(self, refund_amount: Decimal, refund_transaction_id: str, reason: str) -> None:
        refund_transaction_id = require_text(refund_transaction_id, "Refund transaction ID")
        reason = require_text(reason, "Refund reason")
        if refund_amount <= 0:
            raise BusinessRuleError("Payment has no remaining amount to refund")

        self.refunded_amount = to_decimal(self.refunded_amount) + refund_amount
        self.refunded_at = utcnow()
        self.refund_transaction_id = refund_transaction_id
        self.refund_reason = reason

        self.status = PaymentStatus.REFUNDED if self.is_fully_refunded else PaymentStatus.PARTIALLY_REFUNDED

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, booking={self.booking_id}, status={self.status})>"
