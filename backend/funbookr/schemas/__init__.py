from funbookr.schemas.booking import BookingCreate, BookingResponse, BookingCancelRequest, BookingCancelResponse
from funbookr.schemas.coupon import CouponCreate, CouponResponse, CouponValidateRequest, CouponValidationResult
from funbookr.schemas.gift_card import GiftCardCreate, GiftCardApply, GiftCardResponse, GiftCardBalance
from funbookr.schemas.loyalty import LoyaltyRedeemRequest, LoyaltyStatusResponse, LoyaltyPointResponse
from funbookr.schemas.payment import PaymentInitiate, PaymentResponse
from funbookr.schemas.webhook import WebhookAck

__all__ = [
    "BookingCreate", "BookingResponse", "BookingCancelRequest", "BookingCancelResponse",
    "CouponCreate", "CouponResponse", "CouponValidateRequest", "CouponValidationResult",
    "GiftCardCreate", "GiftCardApply", "GiftCardResponse", "GiftCardBalance",
    "LoyaltyRedeemRequest", "LoyaltyStatusResponse", "LoyaltyPointResponse",
    "PaymentInitiate", "PaymentResponse",
    "WebhookAck",
]
