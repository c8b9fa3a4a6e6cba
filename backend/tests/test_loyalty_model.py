"""
Unit tests for loyalty tiers, the per-user aggregate and ledger rows.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from funbookr.core.exceptions import BusinessRuleError, DomainValidationError
from funbookr.models.enums import LoyaltyTier
from funbookr.models.loyalty import (
    EARNED,
    REDEEMED,
    LoyaltyPoint,
    UserLoyaltyStatus,
    next_tier,
    tier_for_points,
)


@pytest.mark.parametrize(
    "points,tier",
    [
        (0, LoyaltyTier.BRONZE),
        (4999, LoyaltyTier.BRONZE),
        (5000, LoyaltyTier.SILVER),
        (19999, LoyaltyTier.SILVER),
        (20000, LoyaltyTier.GOLD),
        (50000, LoyaltyTier.PLATINUM),
    ],
)
def test_tier_thresholds(points, tier):
    assert tier_for_points(points) == tier


def test_silver_exactly_at_boundary():
    below = UserLoyaltyStatus.create(uuid4())
    below.add_points(4999)
    assert below.current_tier == LoyaltyTier.BRONZE
    assert below.tier_upgraded_at is None

    at = UserLoyaltyStatus.create(uuid4())
    at.add_points(5000)
    assert at.current_tier == LoyaltyTier.SILVER
    assert at.tier_upgraded_at is not None
    assert at.get_discount_percentage() == Decimal("5")


def test_redeem_reduces_available_only():
    status = UserLoyaltyStatus.create(uuid4())
    status.add_points(6000)
    status.redeem_points(2000)

    assert status.available_points == 4000
    assert status.total_points == 6000
    assert status.lifetime_points == 6000
    assert status.current_tier == LoyaltyTier.SILVER


def test_redeem_more_than_available():
    status = UserLoyaltyStatus.create(uuid4())
    status.add_points(100)
    with pytest.raises(BusinessRuleError):
        status.redeem_points(101)
    assert status.available_points == 100


@pytest.mark.parametrize("points", [0, -10])
def test_points_must_be_positive(points):
    status = UserLoyaltyStatus.create(uuid4())
    with pytest.raises(DomainValidationError):
        status.add_points(points)
    with pytest.raises(DomainValidationError):
        status.redeem_points(points)


def test_next_tier():
    assert next_tier(LoyaltyTier.BRONZE) == LoyaltyTier.SILVER
    assert next_tier(LoyaltyTier.PLATINUM) is None


def test_ledger_rows():
    earned = LoyaltyPoint.create(uuid4(), 150, "EARNED", reference_type="Booking")
    assert earned.transaction_type == EARNED
    assert earned.reference_type == "booking"
    assert earned.expiry_date is not None
    assert earned.is_expired() is False

    redeemed = LoyaltyPoint.create(uuid4(), -100, REDEEMED)
    assert redeemed.expiry_date is None

    with pytest.raises(DomainValidationError):
        LoyaltyPoint.create(uuid4(), 0, EARNED)
