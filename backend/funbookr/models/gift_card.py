"""
Gift card model: a stored-value instrument and its append-only usage ledger.
"""

import secrets
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, String, Uuid

from funbookr.core.clock import as_utc, utcnow
from funbookr.core.exceptions import DomainValidationError, InvalidStateError
from funbookr.db.base import Base, TimestampMixin
from funbookr.models.common import ZERO, optional_text, require_id, require_text, to_decimal
from funbookr.models.enums import GiftCardStatus, string_enum

DEFAULT_VALIDITY_DAYS = 365


def generate_gift_card_code() -> str:
    """FB-####-####-####"""
    parts = (str(1000 + secrets.randbelow(9000)) for _ in range(3))
    return "FB-" + "-".join(parts)


class GiftCard(Base, TimestampMixin):
    __tablename__ = "gift_cards"

    id = Column(Uuid, primary_key=True, default=uuid4)
    code = Column(String(20), unique=True, nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    balance = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="INR")

    purchased_by = Column(Uuid, nullable=True, index=True)
    recipient_email = Column(String(255), nullable=True, index=True)
    recipient_name = Column(String(200), nullable=True)
    message = Column(String(1000), nullable=True)

    status = Column(string_enum(GiftCardStatus, "gift_card_status"), nullable=False, default=GiftCardStatus.ACTIVE)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    purchased_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    redeemed_at = Column(DateTime(timezone=True), nullable=True)
    redeemed_by = Column(Uuid, nullable=True)

    __table_args__ = (
        CheckConstraint("amount > 0", name="check_gift_card_amount_positive"),
        CheckConstraint("balance >= 0", name="check_gift_card_balance_non_negative"),
        CheckConstraint("balance <= amount", name="check_gift_card_balance_lte_amount"),
    )

    @classmethod
    def create(
        cls,
        amount,
        currency: str = "INR",
        purchased_by: Optional[UUID] = None,
        recipient_email: Optional[str] = None,
        recipient_name: Optional[str] = None,
        message: Optional[str] = None,
        validity_days: int = DEFAULT_VALIDITY_DAYS,
    ) -> "GiftCard":
        amount = to_decimal(amount)
        if amount <= 0:
            raise DomainValidationError("Amount must be greater than 0")
        if validity_days <= 0:
            raise DomainValidationError("Validity days must be greater than 0")

        now = utcnow()
        return cls(
            id=uuid4(),
            code=generate_gift_card_code(),
            amount=amount,
            balance=amount,
            currency=require_text(currency, "Currency").upper(),
            purchased_by=purchased_by,
            recipient_email=optional_text(recipient_email),
            recipient_name=optional_text(recipient_name),
            message=optional_text(message),
            status=GiftCardStatus.ACTIVE,
            purchased_at=now,
            expires_at=now + timedelta(days=validity_days),
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        return self.expires_at is not None and as_utc(self.expires_at) < now

    def use(self, amount, booking_id: UUID, used_by: Optional[UUID] = None) -> Decimal:
        """Consume up to ``amount`` from the balance and return what was consumed."""
        if self.status != GiftCardStatus.ACTIVE:
            raise InvalidStateError(f"Gift card is {self.status.value}")

        if self.is_expired():
            # Expiry is recorded lazily, then the use is still rejected.
            self.expire()
            raise InvalidStateError("Gift card has expired")

        if self.balance <= 0:
            raise InvalidStateError("Gift card has no balance")

        require_id(booking_id, "Booking ID")
        requested = to_decimal(amount)
        if requested <= 0:
            raise DomainValidationError("Amount must be greater than 0")

        amount_to_use = min(requested, to_decimal(self.balance))
        self.balance = to_decimal(self.balance) - amount_to_use

        if self.balance == ZERO:
            self.status = GiftCardStatus.REDEEMED
            self.redeemed_at = utcnow()
            self.redeemed_by = used_by

        return amount_to_use

    def expire(self) -> None:
        if self.status == GiftCardStatus.ACTIVE:
            self.status = GiftCardStatus.EXPIRED

    def cancel(self) -> None:
        if self.status == GiftCardStatus.REDEEMED:
            raise InvalidStateError("Cannot cancel redeemed gift card")

        self.status = GiftCardStatus.CANCELLED

    def is_valid(self) -> bool:
        return self.status == GiftCardStatus.ACTIVE and self.balance > 0 and not self.is_expired()

    def days_until_expiry(self) -> Optional[int]:
        if self.expires_at is None:
            return None
        return max(0, (as_utc(self.expires_at) - utcnow()).days)

    def __repr__(self) -> str:
        return f"<GiftCard(code={self.code}, balance={self.balance}/{self.amount}, status={self.status})>"


class GiftCardTransaction(Base):
    """Append-only ledger row written for every gift card use."""

    __tablename__ = "gift_card_transactions"

    id = Column(Uuid, primary_key=True, default=uuid4)
    gift_card_id = Column(Uuid, ForeignKey("gift_cards.id"), nullable=False, index=True)
    booking_id = Column(Uuid, nullable=True, index=True)
    amount_used = Column(Numeric(12, 2), nullable=False)
    balance_after = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    @classmethod
    def create(
        cls,
        gift_card_id: UUID,
        booking_id: Optional[UUID],
        amount_used,
        balance_after,
    ) -> "GiftCardTransaction":
        require_id(gift_card_id, "Gift card ID")
        return cls(
            id=uuid4(),
            gift_card_id=gift_card_id,
            booking_id=booking_id,
            amount_used=to_decimal(amount_used),
            balance_after=to_decimal(balance_after),
            created_at=utcnow(),
        )
