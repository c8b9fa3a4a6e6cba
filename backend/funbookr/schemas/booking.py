"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from funbookr.models.enums import BookingStatus


class ParticipantCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    age: Optional[int] = Field(None, ge=0, le=150)
    gender: Optional[str] = Field(None, max_length=20)
    contact_phone: Optional[str] = Field(None, max_length=30)


class BookingCreate(BaseModel):
    activity_id: UUID
    booking_date: date
    booking_time: Optional[time] = None
    number_of_participants: int = Field(..., gt=0, le=100)
    price_per_participant: Decimal = Field(..., ge=0)
    currency: str = Field(default="INR", min_length=3, max_length=3)
    category_id: Optional[UUID] = None
    coupon_code: Optional[str] = Field(None, max_length=50)
    tax_amount: Optional[Decimal] = Field(None, ge=0)
    participants: list[ParticipantCreate] = Field(default_factory=list)
    special_requests: Optional[str] = Field(None, max_length=2000)
    customer_notes: Optional[str] = Field(None, max_length=2000)


class BookingCancelRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class BookingResponse(BaseModel):
    id: UUID
    booking_reference: str
    customer_id: UUID
    activity_id: UUID
    booking_date: date
    booking_time: Optional[time]
    number_of_participants: int
    price_per_participant: Decimal
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    currency: str
    coupon_code: Optional[str]
    status: BookingStatus
    confirmed_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    cancellation_reason: Optional[str]
    completed_at: Optional[datetime]
    checked_in_at: Optional[datetime]
    refund_amount: Optional[Decimal]
    is_no_show: bool
    special_requests: Optional[str]
    customer_notes: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingCancelResponse(BaseModel):
    message: str
    booking_id: UUID
    status: str
    refund_amount: Decimal
    refund_percentage: int
