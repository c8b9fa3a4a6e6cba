"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# Booking lifecycle metrics
booking_transitions = Counter(
    'booking_transitions_total',
    'Booking status transitions',
    ['status']  # pending, confirmed, completed, cancelled, refunded, no_show
)

# Payment metrics
payment_events = Counter(
    'payment_events_total',
    'Payment state changes',
    ['outcome']  # initiated, completed, failed, retried, refunded
)

refunded_amount = Counter(
    'payment_refunded_amount_total',
    'Sum of refunded amounts in major currency units'
)

# Webhook metrics
webhook_deliveries = Counter(
    'payment_webhook_deliveries_total',
    'Payment gateway webhook deliveries',
    ['event', 'result']  # processed, ignored, rejected, error
)

webhook_latency = Histogram(
    'payment_webhook_latency_seconds',
    'Webhook processing latency',
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

# Notification metrics
notifications_sent = Counter(
    'notifications_total',
    'Notification dispatch attempts',
    ['kind', 'result']  # payment_success/payment_failure, sent/failed
)

# Discount metrics
discounts_applied = Counter(
    'discounts_applied_total',
    'Discount instruments applied to bookings',
    ['source']  # coupon, gift_card, loyalty
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_transition(status: str):
    booking_transitions.labels(status=status).inc()


def record_payment_event(outcome: str):
    payment_events.labels(outcome=outcome).inc()


def record_webhook(event: str, result: str):
    webhook_deliveries.labels(event=event or "unknown", result=result).inc()


def record_notification(kind: str, sent: bool):
    """Record notification dispatch attempt."""
    result = "sent" if sent else "failed"
    notifications_sent.labels(kind=kind, result=result).inc()


def record_discount(source: str):
    discounts_applied.labels(source=source).inc()
