"""
Gift card endpoints.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from funbookr.core.security import get_current_user_id
from funbookr.db.session import get_db
from funbookr.schemas.gift_card import (
    GiftCardApply,
    GiftCardApplyResult,
    GiftCardBalance,
    GiftCardCreate,
    GiftCardResponse,
    GiftCardValidationResult,
)
from funbookr.services.gift_card_service import (
    apply_gift_card_to_booking,
    cancel_gift_card,
    create_gift_card,
    get_gift_card_balance,
    list_user_gift_cards,
    validate_gift_card,
)

router = APIRouter(prefix="/gift-cards", tags=["Gift Cards"])


@router.post("/", response_model=GiftCardResponse, status_code=status.HTTP_201_CREATED)
async def purchase_gift_card(
    gift_card_data: GiftCardCreate,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await create_gift_card(db, user_id, gift_card_data)


@router.get("/", response_model=list[GiftCardResponse])
async def list_my_gift_cards(
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Cards purchased by, or addressed to, the authenticated user."""
    return await list_user_gift_cards(db, user_id)


@router.get("/{code}/validate", response_model=GiftCardValidationResult)
async def validate_gift_card_endpoint(code: str, db: AsyncSession = Depends(get_db)):
    return await validate_gift_card(db, code)


@router.get("/{code}/balance", response_model=GiftCardBalance)
async def gift_card_balance(code: str, db: AsyncSession = Depends(get_db)):
    return await get_gift_card_balance(db, code)


@router.post("/apply", response_model=GiftCardApplyResult)
async def apply_gift_card(
    apply_data: GiftCardApply,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await apply_gift_card_to_booking(db, apply_data.booking_id, apply_data.code, user_id)


@router.post("/{code}/cancel", response_model=GiftCardResponse)
async def cancel_gift_card_endpoint(
    code: str,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await cancel_gift_card(db, code, user_id)
