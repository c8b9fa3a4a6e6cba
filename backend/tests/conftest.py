"""
Pytest fixtures for test database, client, authentication and notifications.

Each test gets its own SQLite database file (override with TEST_DATABASE_URL).
Requests run in their own session, committed or rolled back like the real
get_db dependency, so a failing request never disturbs fixture objects.
"""

import hashlib
import hmac
import json
import os
from datetime import date, timedelta
from decimal import Decimal
from typing import AsyncGenerator, Optional
from uuid import uuid4

os.environ.setdefault("RAZORPAY_WEBHOOK_SECRET", "test-webhook-secret")
os.environ.setdefault("NOTIFICATION_BACKEND", "null")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from funbookr.main import app
from funbookr.core.clock import utc_today
from funbookr.core.config import get_settings
from funbookr.core.security import ACTIVITY_PROVIDER, ADMIN, create_access_token
from funbookr.db.base import Base
from funbookr.db.session import get_db
from funbookr.models.booking import Booking
from funbookr.models.payment import Payment
from funbookr.models.user import User
from funbookr.services.interfaces.notifications import NotificationDispatcher
from funbookr.services.strategy_factory import get_notification_dispatcher

WEBHOOK_SECRET = os.environ["RAZORPAY_WEBHOOK_SECRET"]


class RecordingDispatcher(NotificationDispatcher):
    """Keeps every notification for assertions; can be told to fail."""

    def __init__(self):
        self.successes = []
        self.failures = []
        self.raise_on_send = False

    async def send_payment_success(self, booking_id, user_id, amount):
        if self.raise_on_send:
            raise RuntimeError("notification backend down")
        self.successes.append((booking_id, user_id, amount))

    async def send_payment_failure(self, booking_id, user_id, reason):
        if self.raise_on_send:
            raise RuntimeError("notification backend down")
        self.failures.append((booking_id, user_id, reason))


@pytest_asyncio.fixture(scope="function")
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh schema per test, dropped afterwards."""
    url = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    engine = create_async_engine(url, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest_asyncio.fixture(scope="function")
async def client(session_factory, dispatcher) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with per-request test sessions and a recording dispatcher."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    user = User(id=uuid4(), email="customer@example.com", full_name="Test Customer")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    user = User(id=uuid4(), email="other@example.com", full_name="Other Customer")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def system_user(db_session: AsyncSession) -> User:
    """The actor webhooks confirm bookings as, found by SYSTEM_USER_EMAIL."""
    user = User(id=uuid4(), email=get_settings().SYSTEM_USER_EMAIL, full_name="System")
    db_session.add(user)
    await db_session.commit()
    return user


def headers_for(user: User, role: Optional[str] = None) -> dict:
    claims = {"sub": str(user.id)}
    if role:
        claims["role"] = role
    token = create_access_token(data=claims)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Authorization headers with Bearer token."""
    return headers_for(test_user)


@pytest_asyncio.fixture
async def provider_user(db_session: AsyncSession) -> User:
    user = User(id=uuid4(), email="provider@example.com", full_name="Activity Provider")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
def provider_headers(provider_user: User) -> dict:
    return headers_for(provider_user, ACTIVITY_PROVIDER)


@pytest.fixture
def admin_headers(provider_user: User) -> dict:
    return headers_for(provider_user, ADMIN)


@pytest.fixture
def make_booking(db_session: AsyncSession):
    """Persist a pending booking; returns an async factory."""

    async def _make(
        customer: User,
        booking_date: Optional[date] = None,
        participants: int = 2,
        price: str = "1000",
    ) -> Booking:
        booking = Booking.create(
            customer_id=customer.id,
            activity_id=uuid4(),
            booking_date=booking_date or utc_today() + timedelta(days=10),
            number_of_participants=participants,
            price_per_participant=Decimal(price),
        )
        db_session.add(booking)
        await db_session.commit()
        return booking

    return _make


@pytest.fixture
def make_payment(db_session: AsyncSession):
    """Persist a pending payment with a gateway order id for a booking."""

    async def _make(booking: Booking, order_id: Optional[str] = None) -> Payment:
        payment = Payment.create(booking.id, booking.total_amount, "razorpay")
        payment.set_gateway_order_id(order_id or f"order_{uuid4().hex[:14]}")
        db_session.add(payment)
        await db_session.commit()
        return payment

    return _make


def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def webhook_body(event: str, payment: Optional[dict] = None) -> bytes:
    payload = {"payment": {"entity": payment}} if payment is not None else {}
    return json.dumps({"event": event, "payload": payload}).encode("utf-8")
