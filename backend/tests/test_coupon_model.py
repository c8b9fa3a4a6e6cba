"""
Unit tests for the Coupon entity.
"""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from funbookr.core.clock import utcnow
from funbookr.core.exceptions import DomainValidationError, InvalidStateError
from funbookr.models.coupon import Coupon, CouponUsage
from funbookr.models.enums import DiscountType


def new_coupon(**overrides) -> Coupon:
    now = utcnow()
    params = dict(
        code="save20",
        discount_type="percentage",
        discount_value=Decimal("20"),
        valid_from=now - timedelta(days=1),
        valid_until=now + timedelta(days=30),
    )
    params.update(overrides)
    return Coupon.create(**params)


def test_create_normalizes_code_and_type():
    coupon = new_coupon(discount_type="PERCENTAGE")
    assert coupon.code == "SAVE20"
    assert coupon.discount_type == DiscountType.PERCENTAGE
    assert coupon.used_count == 0
    assert coupon.is_active is True
    assert coupon.applicable_category_ids == []


@pytest.mark.parametrize(
    "overrides",
    [
        {"discount_type": "bogus"},
        {"discount_value": Decimal("0")},
        {"discount_type": "percentage", "discount_value": Decimal("101")},
        {"valid_from": utcnow() + timedelta(days=2), "valid_until": utcnow() + timedelta(days=1)},
        {"usage_limit": 0},
        {"min_order_amount": Decimal("-1")},
    ],
)
def test_create_rejects_invalid_input(overrides):
    with pytest.raises(DomainValidationError):
        new_coupon(**overrides)


def test_percentage_discount_is_capped():
    coupon = new_coupon(max_discount_amount=Decimal("500"))
    assert coupon.calculate_discount(Decimal("4000")) == Decimal("500")
    assert coupon.calculate_discount(Decimal("1000")) == Decimal("200")


def test_fixed_discount_never_exceeds_order():
    coupon = new_coupon(discount_type="fixed", discount_value=Decimal("300"))
    assert coupon.calculate_discount(Decimal("1000")) == Decimal("300")
    assert coupon.calculate_discount(Decimal("120")) == Decimal("120")


def test_below_minimum_order_gives_no_discount():
    coupon = new_coupon(min_order_amount=Decimal("1000"))
    assert coupon.calculate_discount(Decimal("999.99")) == Decimal("0")
    assert coupon.calculate_discount(Decimal("1000")) == Decimal("200")


def test_percentage_discount_rounds_half_up():
    coupon = new_coupon(discount_value=Decimal("12.5"))
    assert coupon.calculate_discount(Decimal("100.10")) == Decimal("12.51")


def test_validity_window_and_activation():
    coupon = new_coupon()
    assert coupon.is_valid_for_usage()

    coupon.deactivate()
    assert not coupon.is_valid_for_usage()
    with pytest.raises(InvalidStateError):
        coupon.calculate_discount(Decimal("100"))

    coupon.activate()
    assert coupon.is_valid_for_usage(utcnow() + timedelta(days=31)) is False
    assert coupon.is_valid_for_usage(utcnow() - timedelta(days=2)) is False


def test_usage_limit():
    coupon = new_coupon(usage_limit=2)
    coupon.increment_usage()
    assert coupon.is_valid_for_usage()
    coupon.increment_usage()
    assert coupon.usage_limit_reached
    assert not coupon.is_valid_for_usage()


def test_category_applicability():
    category = uuid4()
    unrestricted = new_coupon()
    restricted = new_coupon(applicable_category_ids=[category])

    assert unrestricted.is_applicable_to_category(uuid4())
    assert restricted.is_applicable_to_category(category)
    assert not restricted.is_applicable_to_category(uuid4())


def test_update_validates_before_mutating():
    coupon = new_coupon(description="Old")
    with pytest.raises(DomainValidationError):
        coupon.update("New", Decimal("-1"), None, None)
    assert coupon.description == "Old"

    coupon.update("New", Decimal("100"), Decimal("50"), 10)
    assert coupon.description == "New"
    assert coupon.usage_limit == 10

    with pytest.raises(DomainValidationError):
        coupon.update_validity(utcnow(), utcnow() - timedelta(hours=1))


def test_usage_record():
    usage = CouponUsage.create(uuid4(), uuid4(), uuid4(), Decimal("150"))
    assert usage.discount_amount == Decimal("150")
    with pytest.raises(DomainValidationError):
        CouponUsage.create(uuid4(), uuid4(), uuid4(), Decimal("-1"))
