"""
Pydantic schemas for gift card request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from funbookr.models.enums import GiftCardStatus


class GiftCardCreate(BaseModel):
    amount: Decimal = Field(..., gt=0)
    currency: str = Field(default="INR", min_length=3, max_length=3)
    recipient_email: Optional[EmailStr] = None
    recipient_name: Optional[str] = Field(None, max_length=200)
    message: Optional[str] = Field(None, max_length=1000)
    validity_days: int = Field(default=365, gt=0, le=1825)


class GiftCardApply(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)
    booking_id: UUID


class GiftCardResponse(BaseModel):
    id: UUID
    code: str
    amount: Decimal
    balance: Decimal
    currency: str
    status: GiftCardStatus
    recipient_email: Optional[str]
    recipient_name: Optional[str]
    message: Optional[str]
    expires_at: Optional[datetime]
    purchased_at: datetime

    model_config = {"from_attributes": True}


class GiftCardValidationResult(BaseModel):
    is_valid: bool
    code: Optional[str] = None
    balance: Decimal = Decimal("0")
    currency: Optional[str] = None
    expires_at: Optional[datetime] = None
    error_message: Optional[str] = None

    @classmethod
    def failure(cls, message: str) -> "GiftCardValidationResult":
        return cls(is_valid=False, error_message=message)


class GiftCardBalance(BaseModel):
    code: str
    balance: Decimal
    original_amount: Decimal
    currency: str
    status: str
    expires_at: Optional[datetime]
    days_until_expiry: Optional[int]


class GiftCardApplyResult(BaseModel):
    booking_id: UUID
    amount_applied: Decimal
    remaining_balance: Decimal
    gift_card_status: str
