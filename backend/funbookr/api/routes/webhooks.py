"""
Inbound payment gateway webhooks.

The body is read raw so the signature is checked over exactly the bytes
the gateway signed, before any JSON parsing.
"""

import json
import time

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from funbookr.core.config import get_settings
from funbookr.core.logging import get_logger
from funbookr.core.metrics import record_webhook, webhook_latency
from funbookr.core.webhook_security import SIGNATURE_HEADER, verify_signature
from funbookr.db.session import get_db
from funbookr.schemas.webhook import WebhookAck
from funbookr.services.interfaces.notifications import NotificationDispatcher
from funbookr.services.strategy_factory import get_notification_dispatcher
from funbookr.services.webhook_service import process_webhook_event

logger = get_logger(__name__)
router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post("/payment", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """
    Reconcile a payment gateway event.

    400 on a bad signature or unparseable body; 500 on unexpected errors so
    the gateway retries; 200 for everything else, including events that
    were ignored.
    """
    start_time = time.perf_counter()
    raw_body = await request.body()

    if not verify_signature(raw_body, request.headers.get(SIGNATURE_HEADER), get_settings().RAZORPAY_WEBHOOK_SECRET):
        logger.warning("webhook_signature_invalid")
        record_webhook("unknown", "rejected")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature")

    try:
        body = json.loads(raw_body)
    except ValueError:
        record_webhook("unknown", "rejected")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body")
    if not isinstance(body, dict):
        record_webhook("unknown", "rejected")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body")

    event = body.get("event")
    logger.info("webhook_received", webhook_event=event)

    try:
        result = await process_webhook_event(db, event, body.get("payload"), dispatcher)
    except Exception as e:
        logger.error("webhook_processing_failed", webhook_event=event, error=str(e), exc_info=True)
        record_webhook(event, "error")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Webhook processing failed"},
        )
    finally:
        webhook_latency.observe(time.perf_counter() - start_time)

    record_webhook(event, result)
    logger.info("webhook_processed", webhook_event=event, result=result)
    return WebhookAck(event=event, result=result)
