"""
Payment endpoints for the customer side of the payment flow.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from funbookr.core.security import get_current_user_id
from funbookr.db.session import get_db
from funbookr.schemas.payment import PaymentInitiate, PaymentResponse
from funbookr.services.payment_service import get_payment, initiate_payment, retry_payment

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def initiate_payment_endpoint(
    payment_data: PaymentInitiate,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Record the gateway order created for a pending booking."""
    return await initiate_payment(db, payment_data.booking_id, user_id, payment_data.gateway_order_id)


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment_endpoint(
    payment_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await get_payment(db, payment_id, user_id)


@router.post("/{payment_id}/retry", response_model=PaymentResponse)
async def retry_payment_endpoint(
    payment_id: UUID,
    gateway_order_id: Optional[str] = Query(None, max_length=100),
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Move a failed payment back to pending, up to the retry cap."""
    return await retry_payment(db, payment_id, user_id, gateway_order_id)
