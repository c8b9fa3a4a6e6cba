"""
Loyalty endpoints for the authenticated user.
"""

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from funbookr.core.security import get_current_user_id
from funbookr.db.session import get_db
from funbookr.schemas.loyalty import (
    LoyaltyPointResponse,
    LoyaltyRedeemRequest,
    LoyaltyRedeemResult,
    LoyaltyStatusResponse,
)
from funbookr.services.loyalty_service import (
    calculate_loyalty_discount,
    get_loyalty_history,
    get_loyalty_status,
    redeem_points,
)

router = APIRouter(prefix="/loyalty", tags=["Loyalty"])


@router.get("/status", response_model=LoyaltyStatusResponse)
async def loyalty_status(
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await get_loyalty_status(db, user_id)


@router.get("/history", response_model=list[LoyaltyPointResponse])
async def loyalty_history(
    limit: int = Query(50, ge=1, le=200),
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await get_loyalty_history(db, user_id, limit)


@router.post("/redeem", response_model=LoyaltyRedeemResult)
async def redeem_loyalty_points(
    request: LoyaltyRedeemRequest,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Convert points to a discount amount (100 points = 25.00)."""
    return await redeem_points(db, user_id, request.points, request.booking_id)


@router.get("/discount")
async def loyalty_discount(
    amount: Decimal = Query(..., ge=0),
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Tier discount the user would get on ``amount``."""
    discount = await calculate_loyalty_discount(db, user_id, amount)
    return {"amount": amount, "discount_amount": discount}
