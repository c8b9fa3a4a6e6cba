from funbookr.models.user import User
from funbookr.models.booking import Booking, BookingParticipant
from funbookr.models.payment import Payment
from funbookr.models.coupon import Coupon, CouponUsage
from funbookr.models.gift_card import GiftCard, GiftCardTransaction
from funbookr.models.loyalty import LoyaltyPoint, UserLoyaltyStatus

__all__ = [
    "User",
    "Booking", "BookingParticipant",
    "Payment",
    "Coupon", "CouponUsage",
    "GiftCard", "GiftCardTransaction",
    "LoyaltyPoint", "UserLoyaltyStatus",
]
