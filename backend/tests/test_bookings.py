"""
Tests for booking endpoints and the cancellation refund policy.
"""

from datetime import timedelta
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy import func, select

from funbookr.core.clock import utc_today, utcnow
from funbookr.models.booking import Booking, BookingParticipant
from funbookr.models.coupon import Coupon, CouponUsage
from funbookr.models.enums import BookingStatus, PaymentStatus
from funbookr.models.loyalty import UserLoyaltyStatus
from funbookr.models.payment import Payment
from funbookr.services.booking_service import (
    cancel_booking,
    complete_booking,
    confirm_booking,
    refund_percentage_for,
)


def booking_payload(**overrides) -> dict:
    payload = {
        "activity_id": str(uuid4()),
        "booking_date": (utc_today() + timedelta(days=10)).isoformat(),
        "number_of_participants": 3,
        "price_per_participant": "1000",
    }
    payload.update(overrides)
    return payload


@pytest_asyncio.fixture
async def save20_coupon(db_session) -> Coupon:
    coupon = Coupon.create(
        code="SAVE20",
        discount_type="percentage",
        discount_value=Decimal("20"),
        valid_from=utcnow() - timedelta(days=1),
        valid_until=utcnow() + timedelta(days=30),
        max_discount_amount=Decimal("500"),
    )
    db_session.add(coupon)
    await db_session.commit()
    return coupon


async def settle(db_session, payment: Payment) -> None:
    payment.mark_as_completed(f"pay_{uuid4().hex[:14]}", payment_method="card")
    await db_session.commit()


@pytest.mark.asyncio
async def test_create_booking(client: AsyncClient, auth_headers, test_user):
    response = await client.post(
        "/api/v1/bookings/",
        json=booking_payload(
            special_requests="Vegetarian lunch",
            participants=[{"name": "Asha", "age": 31}, {"name": "Ravi"}],
        ),
        headers=auth_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "Pending"
    assert data["customer_id"] == str(test_user.id)
    assert Decimal(data["subtotal"]) == Decimal("3000")
    assert Decimal(data["total_amount"]) == Decimal("3000")
    assert data["booking_reference"].startswith("FB")
    assert data["special_requests"] == "Vegetarian lunch"


@pytest.mark.asyncio
async def test_create_booking_persists_participants(client: AsyncClient, auth_headers, session_factory):
    response = await client.post(
        "/api/v1/bookings/",
        json=booking_payload(participants=[{"name": "Asha"}, {"name": "Ravi"}]),
        headers=auth_headers,
    )
    booking_id = response.json()["id"]

    async with session_factory() as session:
        count = await session.scalar(
            select(func.count()).select_from(BookingParticipant).where(
                BookingParticipant.booking_id == UUID(booking_id)
            )
        )
    assert count == 2


@pytest.mark.asyncio
async def test_create_booking_unauthenticated(client: AsyncClient):
    response = await client.post("/api/v1/bookings/", json=booking_payload())
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_booking_in_the_past(client: AsyncClient, auth_headers):
    response = await client.post(
        "/api/v1/bookings/",
        json=booking_payload(booking_date=(utc_today() - timedelta(days=1)).isoformat()),
        headers=auth_headers,
    )
    assert response.status_code == 422
    assert response.json()["detail"] == "Booking date cannot be in the past"


@pytest.mark.asyncio
async def test_create_booking_with_coupon_and_tax(client: AsyncClient, auth_headers, save20_coupon):
    response = await client.post(
        "/api/v1/bookings/",
        json=booking_payload(coupon_code="save20", tax_amount="270"),
        headers=auth_headers,
    )
    assert response.status_code == 201
    data = response.json()
    # 20% of 3000 is 600, capped at 500
    assert Decimal(data["discount_amount"]) == Decimal("500")
    assert Decimal(data["total_amount"]) == Decimal("2770")
    assert data["coupon_code"] == "SAVE20"


@pytest.mark.asyncio
async def test_coupon_is_single_use_per_user(client: AsyncClient, auth_headers, save20_coupon, session_factory):
    first = await client.post(
        "/api/v1/bookings/", json=booking_payload(coupon_code="SAVE20"), headers=auth_headers
    )
    assert first.status_code == 201

    second = await client.post(
        "/api/v1/bookings/", json=booking_payload(coupon_code="SAVE20"), headers=auth_headers
    )
    assert second.status_code == 400
    assert second.json()["detail"] == "You have already used this coupon"

    async with session_factory() as session:
        coupon = await session.get(Coupon, save20_coupon.id)
        usages = await session.scalar(select(func.count()).select_from(CouponUsage))
        bookings = await session.scalar(select(func.count()).select_from(Booking))
    assert coupon.used_count == 1
    assert usages == 1
    # The rejected booking was rolled back with its request.
    assert bookings == 1


@pytest.mark.asyncio
async def test_list_bookings_only_returns_own(client: AsyncClient, auth_headers, test_user, other_user, make_booking):
    await make_booking(test_user)
    await make_booking(test_user)
    await make_booking(other_user)

    response = await client.get("/api/v1/bookings/", headers=auth_headers)
    assert response.status_code == 200
    assert len(response.json()) == 2

    filtered = await client.get("/api/v1/bookings/?status=Confirmed", headers=auth_headers)
    assert filtered.json() == []


@pytest.mark.asyncio
async def test_get_other_users_booking_forbidden(client: AsyncClient, auth_headers, other_user, make_booking):
    booking = await make_booking(other_user)
    response = await client.get(f"/api/v1/bookings/{booking.id}", headers=auth_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_get_missing_booking(client: AsyncClient, auth_headers):
    response = await client.get(f"/api/v1/bookings/{uuid4()}", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_cancel_unpaid_booking(client: AsyncClient, auth_headers, test_user, make_booking):
    booking = await make_booking(test_user)

    response = await client.post(
        f"/api/v1/bookings/{booking.id}/cancel",
        json={"reason": "Change of plans"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "Cancelled"
    assert Decimal(data["refund_amount"]) == Decimal("0")
    assert data["refund_percentage"] == 0


@pytest.mark.asyncio
async def test_cancel_paid_booking_early_gets_full_refund(
    client: AsyncClient, auth_headers, test_user, make_booking, make_payment, db_session, session_factory
):
    booking = await make_booking(test_user, booking_date=utc_today() + timedelta(days=10))
    payment = await make_payment(booking)
    await settle(db_session, payment)

    response = await client.post(
        f"/api/v1/bookings/{booking.id}/cancel",
        json={"reason": "Weather"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "Refunded"
    assert data["refund_percentage"] == 100
    assert Decimal(data["refund_amount"]) == Decimal("2000")

    async with session_factory() as session:
        stored = await session.get(Payment, payment.id)
    assert stored.status == PaymentStatus.REFUNDED
    assert stored.refunded_amount == Decimal("2000")
    assert stored.refund_transaction_id.startswith("REFUND_TXN_")
    assert len(stored.refund_transaction_id) == len("REFUND_TXN_") + 16


@pytest.mark.asyncio
async def test_cancel_someone_elses_booking(client: AsyncClient, auth_headers, other_user, make_booking):
    booking = await make_booking(other_user)
    response = await client.post(
        f"/api/v1/bookings/{booking.id}/cancel",
        json={"reason": "Not mine"},
        headers=auth_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_cancel_twice_conflicts(client: AsyncClient, auth_headers, test_user, make_booking):
    booking = await make_booking(test_user)
    url = f"/api/v1/bookings/{booking.id}/cancel"
    await client.post(url, json={"reason": "First"}, headers=auth_headers)

    response = await client.post(url, json={"reason": "Second"}, headers=auth_headers)
    assert response.status_code == 409


@pytest.mark.parametrize("hours,expected", [(72, 100), (48, 100), (47.9, 50), (24, 50), (23.9, 0), (-1, 0)])
def test_refund_percentage_policy(hours, expected):
    assert refund_percentage_for(hours) == expected


@pytest.mark.asyncio
async def test_cancel_between_24_and_48_hours_refunds_half(db_session, test_user, make_booking, make_payment):
    booking = await make_booking(test_user, booking_date=utc_today() + timedelta(days=3))
    payment = await make_payment(booking)
    await settle(db_session, payment)

    result = await cancel_booking(
        db_session, booking.id, test_user.id, "Sick", now=booking.starts_at() - timedelta(hours=36)
    )

    assert result.refund_percentage == 50
    assert result.refund_amount == Decimal("1000.00")
    assert booking.status == BookingStatus.REFUNDED
    assert payment.status == PaymentStatus.PARTIALLY_REFUNDED
    assert payment.remaining_amount == Decimal("1000.00")


@pytest.mark.asyncio
async def test_cancel_within_24_hours_refunds_nothing(db_session, test_user, make_booking, make_payment):
    booking = await make_booking(test_user, booking_date=utc_today() + timedelta(days=3))
    payment = await make_payment(booking)
    await settle(db_session, payment)

    result = await cancel_booking(
        db_session, booking.id, test_user.id, "Sick", now=booking.starts_at() - timedelta(hours=5)
    )

    assert result.refund_percentage == 0
    assert booking.status == BookingStatus.CANCELLED
    assert payment.status == PaymentStatus.COMPLETED
    assert payment.refunded_amount == Decimal("0")


@pytest.mark.asyncio
async def test_confirm_and_complete_awards_loyalty_points(
    client: AsyncClient, provider_headers, test_user, make_booking, session_factory
):
    booking = await make_booking(test_user, booking_date=utc_today(), participants=2, price="1000")

    confirmed = await client.post(f"/api/v1/bookings/{booking.id}/confirm", headers=provider_headers)
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "Confirmed"

    completed = await client.post(f"/api/v1/bookings/{booking.id}/complete", headers=provider_headers)
    assert completed.status_code == 200
    assert completed.json()["status"] == "Completed"

    async with session_factory() as session:
        loyalty = (
            await session.execute(select(UserLoyaltyStatus).where(UserLoyaltyStatus.user_id == test_user.id))
        ).scalar_one()
    # 1 point per unit of the 2000 total plus the first booking bonus
    assert loyalty.available_points == 2250


@pytest.mark.asyncio
async def test_second_completion_has_no_bonus(db_session, test_user, make_booking):
    first = await make_booking(test_user, booking_date=utc_today(), participants=1, price="100")
    second = await make_booking(test_user, booking_date=utc_today(), participants=1, price="300")
    for booking in (first, second):
        await confirm_booking(db_session, booking.id, uuid4())
        await complete_booking(db_session, booking.id)

    loyalty = (
        await db_session.execute(select(UserLoyaltyStatus).where(UserLoyaltyStatus.user_id == test_user.id))
    ).scalar_one()
    assert loyalty.total_points == 100 + 250 + 300


@pytest.mark.asyncio
async def test_complete_future_booking_conflicts(client: AsyncClient, provider_headers, test_user, make_booking):
    booking = await make_booking(test_user, booking_date=utc_today() + timedelta(days=2))
    await client.post(f"/api/v1/bookings/{booking.id}/confirm", headers=provider_headers)

    response = await client.post(f"/api/v1/bookings/{booking.id}/complete", headers=provider_headers)
    assert response.status_code == 409
    assert response.json()["detail"] == "Cannot complete a booking before its booking date"


@pytest.mark.asyncio
async def test_check_in_and_no_show(client: AsyncClient, provider_headers, test_user, make_booking):
    arriving = await make_booking(test_user, booking_date=utc_today())
    await client.post(f"/api/v1/bookings/{arriving.id}/confirm", headers=provider_headers)
    checked_in = await client.post(f"/api/v1/bookings/{arriving.id}/check-in", headers=provider_headers)
    assert checked_in.status_code == 200
    assert checked_in.json()["checked_in_at"] is not None

    absent = await make_booking(test_user, booking_date=utc_today())
    await client.post(f"/api/v1/bookings/{absent.id}/confirm", headers=provider_headers)
    no_show = await client.post(f"/api/v1/bookings/{absent.id}/no-show", headers=provider_headers)
    assert no_show.status_code == 200
    data = no_show.json()
    assert data["status"] == "Cancelled"
    assert data["is_no_show"] is True
    assert data["cancellation_reason"] == "No-show"


@pytest.mark.asyncio
async def test_operator_actions_require_auth(client: AsyncClient, test_user, make_booking):
    booking = await make_booking(test_user)
    response = await client.post(f"/api/v1/bookings/{booking.id}/confirm")
    assert response.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize("action", ["confirm", "complete", "check-in", "no-show"])
async def test_customer_cannot_run_operator_actions(
    client: AsyncClient, auth_headers, test_user, make_booking, session_factory, action
):
    booking = await make_booking(test_user, booking_date=utc_today())

    response = await client.post(f"/api/v1/bookings/{booking.id}/{action}", headers=auth_headers)
    assert response.status_code == 403

    async with session_factory() as session:
        stored = await session.get(Booking, booking.id)
    assert stored.status == BookingStatus.PENDING


@pytest.mark.asyncio
async def test_admin_can_confirm(client: AsyncClient, admin_headers, test_user, make_booking):
    booking = await make_booking(test_user)
    response = await client.post(f"/api/v1/bookings/{booking.id}/confirm", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "Confirmed"
