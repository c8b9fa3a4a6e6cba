"""
Booking endpoints: customer-facing creation and cancellation plus the
operator lifecycle transitions, reserved for activity providers and admins.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from funbookr.core.logging import get_logger
from funbookr.core.security import ACTIVITY_PROVIDER, ADMIN, get_current_user_id, require_role
from funbookr.db.session import get_db
from funbookr.models.enums import BookingStatus
from funbookr.schemas.booking import (
    BookingCancelRequest,
    BookingCancelResponse,
    BookingCreate,
    BookingResponse,
)
from funbookr.services.booking_service import (
    cancel_booking,
    check_in_booking,
    complete_booking,
    confirm_booking,
    create_booking,
    get_customer_booking,
    get_user_bookings,
    mark_booking_no_show,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/bookings", tags=["Bookings"])

require_operator = require_role(ACTIVITY_PROVIDER, ADMIN)


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking_endpoint(
    booking_data: BookingCreate,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a pending booking for the authenticated customer.

    A coupon code, if given, is validated for this customer and applied
    before tax. The booking stays Pending until its payment is captured.
    """
    return await create_booking(db, user_id, booking_data)


@router.get("/", response_model=list[BookingResponse])
async def list_user_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Get all bookings for the authenticated user."""
    return await get_user_bookings(db, user_id, status_filter)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking_endpoint(
    booking_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await get_customer_booking(db, booking_id, user_id)


@router.post("/{booking_id}/cancel", response_model=BookingCancelResponse)
async def cancel_booking_endpoint(
    booking_id: UUID,
    cancel_data: BookingCancelRequest,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a booking; paid bookings are refunded per the cancellation policy."""
    return await cancel_booking(db, booking_id, user_id, cancel_data.reason)


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking_endpoint(
    booking_id: UUID,
    user_id: UUID = Depends(require_operator),
    db: AsyncSession = Depends(get_db),
):
    return await confirm_booking(db, booking_id, user_id)


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking_endpoint(
    booking_id: UUID,
    user_id: UUID = Depends(require_operator),
    db: AsyncSession = Depends(get_db),
):
    """Complete a confirmed booking and award the customer's loyalty points."""
    return await complete_booking(db, booking_id)


@router.post("/{booking_id}/check-in", response_model=BookingResponse)
async def check_in_booking_endpoint(
    booking_id: UUID,
    user_id: UUID = Depends(require_operator),
    db: AsyncSession = Depends(get_db),
):
    return await check_in_booking(db, booking_id)


@router.post("/{booking_id}/no-show", response_model=BookingResponse)
async def no_show_booking_endpoint(
    booking_id: UUID,
    user_id: UUID = Depends(require_operator),
    db: AsyncSession = Depends(get_db),
):
    return await mark_booking_no_show(db, booking_id)
