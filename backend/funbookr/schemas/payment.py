"""
Pydantic schemas for payment request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from funbookr.models.enums import PaymentStatus


class PaymentInitiate(BaseModel):
    booking_id: UUID
    gateway_order_id: str = Field(..., min_length=1, max_length=100)


class PaymentResponse(BaseModel):
    id: UUID
    booking_id: UUID
    payment_reference: str
    amount: Decimal
    currency: str
    status: PaymentStatus
    payment_gateway: str
    gateway_order_id: Optional[str]
    gateway_transaction_id: Optional[str]
    payment_method: Optional[str]
    paid_at: Optional[datetime]
    failure_reason: Optional[str]
    retry_attempts: int
    refunded_amount: Decimal
    refunded_at: Optional[datetime]

    model_config = {"from_attributes": True}
