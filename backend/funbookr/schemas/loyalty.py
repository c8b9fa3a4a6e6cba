"""
Pydantic schemas for loyalty request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class LoyaltyRedeemRequest(BaseModel):
    points: int = Field(..., gt=0)
    booking_id: Optional[UUID] = None


class LoyaltyRedeemResult(BaseModel):
    points_redeemed: int
    discount_amount: Decimal
    remaining_points: int


class LoyaltyStatusResponse(BaseModel):
    user_id: UUID
    current_tier: str
    total_points: int
    available_points: int
    lifetime_points: int
    discount_percentage: Decimal
    next_tier: Optional[str]
    points_to_next_tier: Optional[int]
    tier_upgraded_at: Optional[datetime]


class LoyaltyPointResponse(BaseModel):
    id: UUID
    points: int
    transaction_type: str
    reference_type: Optional[str]
    reference_id: Optional[UUID]
    description: Optional[str]
    expiry_date: Optional[datetime]
    created_at: datetime

    model_config = {"from_attributes": True}
