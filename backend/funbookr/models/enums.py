"""
Closed status and tier variants.

Stored as strings by the column type only; everything in memory uses the
enum members.
"""

import enum

from sqlalchemy import Enum as SAEnum


class BookingStatus(str, enum.Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    REFUNDED = "Refunded"


class PaymentStatus(str, enum.Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"
    REFUNDED = "Refunded"
    PARTIALLY_REFUNDED = "PartiallyRefunded"


class GiftCardStatus(str, enum.Enum):
    ACTIVE = "Active"
    REDEEMED = "Redeemed"
    EXPIRED = "Expired"
    CANCELLED = "Cancelled"


class LoyaltyTier(str, enum.Enum):
    BRONZE = "Bronze"
    SILVER = "Silver"
    GOLD = "Gold"
    PLATINUM = "Platinum"


class DiscountType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


def string_enum(enum_cls: type, name: str) -> SAEnum:
    """Column type persisting the member value as a VARCHAR."""
    return SAEnum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )
