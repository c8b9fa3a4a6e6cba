"""
Coupon endpoints.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from funbookr.core.security import ADMIN, get_current_user_id, require_role
from funbookr.db.session import get_db
from funbookr.schemas.coupon import (
    CouponCreate,
    CouponResponse,
    CouponValidateRequest,
    CouponValidationResult,
)
from funbookr.services.coupon_service import create_coupon, list_available_coupons, validate_coupon

router = APIRouter(prefix="/coupons", tags=["Coupons"])


@router.post("/", response_model=CouponResponse, status_code=status.HTTP_201_CREATED)
async def create_coupon_endpoint(
    coupon_data: CouponCreate,
    user_id: UUID = Depends(require_role(ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await create_coupon(db, coupon_data)


@router.get("/available", response_model=list[CouponResponse])
async def list_available_coupons_endpoint(
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Coupons the authenticated user can still use."""
    return await list_available_coupons(db, user_id)


@router.post("/validate", response_model=CouponValidationResult)
async def validate_coupon_endpoint(
    request: CouponValidateRequest,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Check a code against an order amount without applying it.

    Always 200; ``is_valid`` and ``error_message`` carry the outcome.
    """
    return await validate_coupon(db, request.code, request.order_amount, user_id, request.category_id)
