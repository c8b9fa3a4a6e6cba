"""
FunBookr Booking API - Main Application Entry Point

Booking lifecycle, payment reconciliation and discount instruments:
- Bookings with coupon pricing, cancellation refunds and loyalty points
- Payment gateway webhooks verified by HMAC signature
- Gift cards and loyalty redemption
- Structured logging with request correlation and Prometheus metrics
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from funbookr.core.config import get_settings
from funbookr.core.exceptions import DomainError
from funbookr.core.logging import setup_logging, get_logger
from funbookr.core.metrics import metrics_endpoint
from funbookr.api.router import api_router
from funbookr.api.middleware import RequestLoggingMiddleware

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        notification_backend=settings.NOTIFICATION_BACKEND,
    )
    if not settings.RAZORPAY_WEBHOOK_SECRET:
        logger.warning("webhook_secret_not_configured", message="Payment webhooks will be rejected")

    yield

    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Activity booking API with payment reconciliation, coupons, gift cards and loyalty",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    logger.warning(
        "domain_error",
        error_type=type(exc).__name__,
        detail=exc.message,
        status_code=exc.status_code,
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
