"""
Loyalty ledger entries and the per-user loyalty aggregate.

Tier is derived from total_points against fixed thresholds. total_points
only ever grows (redemptions touch available_points), so tiers only go up.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, Uuid

from funbookr.core.clock import as_utc, utcnow
from funbookr.core.exceptions import BusinessRuleError, DomainValidationError
from funbookr.db.base import Base, TimestampMixin
from funbookr.models.common import optional_text, require_id, require_text
from funbookr.models.enums import LoyaltyTier, string_enum

POINTS_EXPIRY_DAYS = 365
EARNED = "earned"
REDEEMED = "redeemed"

# Minimum total points per tier, highest first.
TIER_THRESHOLDS = (
    (LoyaltyTier.PLATINUM, 50000),
    (LoyaltyTier.GOLD, 20000),
    (LoyaltyTier.SILVER, 5000),
    (LoyaltyTier.BRONZE, 0),
)

TIER_DISCOUNT_PERCENTAGE = {
    LoyaltyTier.BRONZE: Decimal("0"),
    LoyaltyTier.SILVER: Decimal("5"),
    LoyaltyTier.GOLD: Decimal("10"),
    LoyaltyTier.PLATINUM: Decimal("15"),
}

_TIER_ORDER = [LoyaltyTier.BRONZE, LoyaltyTier.SILVER, LoyaltyTier.GOLD, LoyaltyTier.PLATINUM]


def tier_for_points(total_points: int) -> LoyaltyTier:
    for tier, minimum in TIER_THRESHOLDS:
        if total_points >= minimum:
            return tier
    return LoyaltyTier.BRONZE


def points_required_for(tier: LoyaltyTier) -> int:
    return dict(TIER_THRESHOLDS)[tier]


def next_tier(tier: LoyaltyTier) -> Optional[LoyaltyTier]:
    index = _TIER_ORDER.index(tier)
    return _TIER_ORDER[index + 1] if index + 1 < len(_TIER_ORDER) else None


class LoyaltyPoint(Base):
    """Immutable ledger entry. Positive points are earned, negative are redeemed."""

    __tablename__ = "loyalty_points"

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    points = Column(Integer, nullable=False)
    transaction_type = Column(String(20), nullable=False)
    reference_type = Column(String(50), nullable=True)
    reference_id = Column(Uuid, nullable=True)
    description = Column(String(500), nullable=True)
    expiry_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("points <> 0", name="check_loyalty_points_non_zero"),
    )

    @classmethod
    def create(
        cls,
        user_id: UUID,
        points: int,
        transaction_type: str,
        reference_type: Optional[str] = None,
        reference_id: Optional[UUID] = None,
        description: Optional[str] = None,
        expiry_days: int = POINTS_EXPIRY_DAYS,
    ) -> "LoyaltyPoint":
        require_id(user_id, "User ID")
        if not points:
            raise DomainValidationError("Points cannot be zero")
        kind = require_text(transaction_type, "Transaction type").lower()

        now = utcnow()
        return cls(
            id=uuid4(),
            user_id=user_id,
            points=points,
            transaction_type=kind,
            reference_type=reference_type.lower() if reference_type else None,
            reference_id=reference_id,
            description=optional_text(description),
            expiry_date=now + timedelta(days=expiry_days) if kind == EARNED else None,
            created_at=now,
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        return self.expiry_date is not None and as_utc(self.expiry_date) < now


class UserLoyaltyStatus(Base, TimestampMixin):
    __tablename__ = "user_loyalty_statuses"

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, nullable=False, unique=True, index=True)
    current_tier = Column(string_enum(LoyaltyTier, "loyalty_tier"), nullable=False, default=LoyaltyTier.BRONZE)
    total_points = Column(Integer, nullable=False, default=0)
    available_points = Column(Integer, nullable=False, default=0)
    lifetime_points = Column(Integer, nullable=False, default=0)
    tier_upgraded_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("available_points >= 0", name="check_loyalty_available_non_negative"),
        CheckConstraint("available_points <= total_points", name="check_loyalty_available_lte_total"),
    )

    @classmethod
    def create(cls, user_id: UUID) -> "UserLoyaltyStatus":
        require_id(user_id, "User ID")
        return cls(
            id=uuid4(),
            user_id=user_id,
            current_tier=LoyaltyTier.BRONZE,
            total_points=0,
            available_points=0,
            lifetime_points=0,
        )

    def add_points(self, points: int) -> None:
        if points is None or points <= 0:
            raise DomainValidationError("Points must be positive")

        self.total_points += points
        self.available_points += points
        self.lifetime_points += points

        self._check_and_upgrade_tier()

    def redeem_points(self, points: int) -> None:
        if points is None or points <= 0:
            raise DomainValidationError("Points must be positive")
        if points > self.available_points:
            raise BusinessRuleError("Insufficient points")

        self.available_points -= points

    def _check_and_upgrade_tier(self) -> None:
        new_tier = tier_for_points(self.total_points)
        if new_tier != self.current_tier:
            self.current_tier = new_tier
            self.tier_upgraded_at = utcnow()

    def get_discount_percentage(self) -> Decimal:
        return TIER_DISCOUNT_PERCENTAGE[self.current_tier]

    def __repr__(self) -> str:
        return f"<UserLoyaltyStatus(user={self.user_id}, tier={self.current_tier}, points={self.available_points})>"
