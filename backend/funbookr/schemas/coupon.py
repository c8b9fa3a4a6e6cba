"""
Pydantic schemas for coupon request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from funbookr.models.enums import DiscountType


class CouponCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    discount_type: str = Field(..., pattern="^(percentage|fixed)$")
    discount_value: Decimal = Field(..., gt=0)
    valid_from: datetime
    valid_until: datetime
    description: Optional[str] = Field(None, max_length=500)
    min_order_amount: Optional[Decimal] = Field(None, ge=0)
    max_discount_amount: Optional[Decimal] = Field(None, ge=0)
    usage_limit: Optional[int] = Field(None, gt=0)
    applicable_category_ids: list[UUID] = Field(default_factory=list)


class CouponResponse(BaseModel):
    id: UUID
    code: str
    description: Optional[str]
    discount_type: DiscountType
    discount_value: Decimal
    min_order_amount: Optional[Decimal]
    max_discount_amount: Optional[Decimal]
    valid_from: datetime
    valid_until: datetime
    usage_limit: Optional[int]
    used_count: int
    is_active: bool

    model_config = {"from_attributes": True}


class CouponValidateRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    order_amount: Decimal = Field(..., ge=0)
    category_id: Optional[UUID] = None


class CouponValidationResult(BaseModel):
    is_valid: bool
    coupon_id: Optional[UUID] = None
    code: Optional[str] = None
    discount_amount: Decimal = Decimal("0")
    discount_percentage: Decimal = Decimal("0")
    discount_type: Optional[str] = None
    error_message: Optional[str] = None

    @classmethod
    def failure(cls, message: str) -> "CouponValidationResult":
        return cls(is_valid=False, error_message=message)
