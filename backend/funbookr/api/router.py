"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from funbookr.api.routes import bookings, coupons, gift_cards, loyalty, payments, webhooks

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(bookings.router)
api_router.include_router(payments.router)
api_router.include_router(coupons.router)
api_router.include_router(gift_cards.router)
api_router.include_router(loyalty.router)
api_router.include_router(webhooks.router)
