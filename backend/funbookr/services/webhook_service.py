"""
Payment gateway webhook reconciliation.

WEBHOOK CONTRACT
================

Body: {"event": "<name>", "payload": {"payment": {...}}}

The payment object carries the gateway payment id (``id``), the order id
(``order_id``), the amount in minor units, and optionally ``method``,
``card.last4``, ``card.network`` and ``error_description``. Gateways that
wrap the object as ``{"entity": {...}}`` are unwrapped first.

Outcomes
--------
- payment.captured: payment Completed, pending booking auto-confirmed by the
  system actor, committed, then a success notification.
- payment.failed: payment Failed, committed, then a failure notification.
- refund.created and anything else: logged only.

Expected gaps (missing payment object, unknown payment, a capture or failure
for an already settled payment) are logged and reported as a non-"processed"
result; the gateway still gets a 2xx. Anything unexpected rolls back and
propagates so the gateway retries the delivery.
"""

import json
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from funbookr.core.config import get_settings
from funbookr.core.logging import get_logger
from funbookr.core.metrics import record_booking_transition, record_payment_event
from funbookr.models.booking import Booking
from funbookr.models.common import to_decimal
from funbookr.models.enums import BookingStatus
from funbookr.models.user import User
from funbookr.services.interfaces.notifications import NotificationDispatcher
from funbookr.services.notification_service import dispatch_safely
from funbookr.services.payment_service import SETTLED_STATUSES, find_payment_by_gateway_ids

logger = get_logger(__name__)

PAYMENT_CAPTURED = "payment.captured"
PAYMENT_FAILED = "payment.failed"
REFUND_CREATED = "refund.created"

PROCESSED = "processed"
IGNORED = "ignored"
DUPLICATE = "duplicate"
NOT_FOUND = "not_found"

DEFAULT_FAILURE_REASON = "Payment failed"


def extract_payment_object(payload: Optional[dict]) -> Optional[dict]:
    if not isinstance(payload, dict):
        return None
    payment_obj = payload.get("payment")
    if not isinstance(payment_obj, dict):
        return None
    entity = payment_obj.get("entity")
    return entity if isinstance(entity, dict) else payment_obj


def minor_units_to_amount(value: Any) -> Optional[Decimal]:
    """Integer minor units to a decimal amount; None when absent or not an integer."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return to_decimal(int(value)) / 100
    except (TypeError, ValueError):
        logger.warning("webhook_amount_unparseable", amount=str(value))
        return None


async def resolve_system_user_id(db: AsyncSession) -> Optional[UUID]:
    """Configured SYSTEM_USER_ID, else the id of the user with SYSTEM_USER_EMAIL."""
    settings = get_settings()
    if settings.SYSTEM_USER_ID:
        return settings.SYSTEM_USER_ID

    result = await db.execute(select(User.id).where(User.email == settings.SYSTEM_USER_EMAIL))
    return result.scalar_one_or_none()


async def handle_payment_captured(
    db: AsyncSession,
    payload: dict,
    dispatcher: NotificationDispatcher,
) -> str:
    payment_obj = extract_payment_object(payload)
    if payment_obj is None:
        logger.warning("webhook_payment_object_missing", webhook_event=PAYMENT_CAPTURED)
        return IGNORED

    transaction_id = payment_obj.get("id")
    if not transaction_id:
        logger.warning("webhook_transaction_id_missing", webhook_event=PAYMENT_CAPTURED)
        return IGNORED

    try:
        payment = await find_payment_by_gateway_ids(db, payment_obj.get("order_id"), transaction_id)
        if payment is None:
            logger.warning("webhook_payment_not_found", transaction_id=transaction_id)
            return NOT_FOUND

        if payment.status in SETTLED_STATUSES:
            logger.info(
                "webhook_payment_already_settled",
                payment_id=payment.id,
                status=payment.status.value,
                transaction_id=transaction_id,
            )
            return DUPLICATE

        amount = minor_units_to_amount(payment_obj.get("amount")) or to_decimal(payment.amount)
        card = payment_obj.get("card") or {}
        payment.mark_as_completed(
            transaction_id,
            payment_method=payment_obj.get("method"),
            card_last4=card.get("last4"),
            card_brand=card.get("network"),
            gateway_response=json.dumps(payload, default=str),
        )
        record_payment_event("completed")

        booking = await db.get(Booking, payment.booking_id)
        if booking is not None and booking.status == BookingStatus.PENDING:
            system_user_id = await resolve_system_user_id(db)
            if system_user_id is None:
                logger.error("webhook_system_user_missing", booking_id=booking.id)
            else:
                booking.confirm(system_user_id)
                record_booking_transition(booking.status.value)
                logger.info("booking_auto_confirmed", booking_id=booking.id, transaction_id=transaction_id)

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("webhook_payment_captured", payment_id=payment.id, transaction_id=transaction_id)

    if booking is not None:
        await dispatch_safely(
            "payment_success",
            dispatcher.send_payment_success,
            booking.id,
            booking.customer_id,
            amount,
        )
    return PROCESSED


async def handle_payment_failed(
    db: AsyncSession,
    payload: dict,
    dispatcher: NotificationDispatcher,
) -> str:
    payment_obj = extract_payment_object(payload)
    if payment_obj is None:
        logger.warning("webhook_payment_object_missing", webhook_event=PAYMENT_FAILED)
        return IGNORED

    transaction_id = payment_obj.get("id")
    if not transaction_id:
        logger.warning("webhook_transaction_id_missing", webhook_event=PAYMENT_FAILED)
        return IGNORED

    reason = payment_obj.get("error_description") or DEFAULT_FAILURE_REASON

    try:
        payment = await find_payment_by_gateway_ids(db, payment_obj.get("order_id"), transaction_id)
        if payment is None:
            logger.warning("webhook_payment_not_found", transaction_id=transaction_id)
            return NOT_FOUND

        if payment.status in SETTLED_STATUSES:
            # A late failure must not overwrite a settled payment.
            logger.warning(
                "webhook_failure_for_settled_payment",
                payment_id=payment.id,
                status=payment.status.value,
            )
            return IGNORED

        payment.mark_as_failed(reason, gateway_response=json.dumps(payload, default=str))
        record_payment_event("failed")
        booking = await db.get(Booking, payment.booking_id)

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "webhook_payment_failed",
        payment_id=payment.id,
        transaction_id=transaction_id,
        reason=reason,
        attempts=payment.retry_attempts,
    )

    if booking is not None:
        await dispatch_safely(
            "payment_failure",
            dispatcher.send_payment_failure,
            booking.id,
            booking.customer_id,
            reason,
        )
    return PROCESSED


async def process_webhook_event(
    db: AsyncSession,
    event: Optional[str],
    payload: Optional[dict],
    dispatcher: NotificationDispatcher,
) -> str:
    """Route one verified webhook to its handler and return the outcome."""
    if not payload:
        logger.warning("webhook_payload_missing", webhook_event=event)
        return IGNORED

    if event == PAYMENT_CAPTURED:
        return await handle_payment_captured(db, payload, dispatcher)
    if event == PAYMENT_FAILED:
        return await handle_payment_failed(db, payload, dispatcher)
    if event == REFUND_CREATED:
        logger.info("webhook_refund_created", payload_keys=sorted(payload.keys()))
        return IGNORED

    logger.info("webhook_event_unhandled", webhook_event=event)
    return IGNORED
