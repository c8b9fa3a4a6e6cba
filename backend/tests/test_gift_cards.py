"""
Tests for gift card purchase, lookup, redemption and cancellation.
"""

from datetime import timedelta
from decimal import Decimal
from uuid import UUID

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from conftest import headers_for
from funbookr.core.clock import utcnow
from funbookr.models.enums import GiftCardStatus
from funbookr.models.gift_card import GiftCard, GiftCardTransaction


async def purchase(client: AsyncClient, headers: dict, amount: str = "1000", **extra) -> dict:
    response = await client.post("/api/v1/gift-cards/", json={"amount": amount, **extra}, headers=headers)
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_purchase_gift_card(client: AsyncClient, auth_headers):
    data = await purchase(
        client,
        auth_headers,
        "2500",
        recipient_email="friend@example.com",
        recipient_name="Friend",
        message="Happy birthday",
    )
    assert data["code"].startswith("FB-")
    assert Decimal(data["amount"]) == Decimal("2500")
    assert Decimal(data["balance"]) == Decimal("2500")
    assert data["status"] == "Active"
    assert data["recipient_email"] == "friend@example.com"
    assert data["expires_at"] is not None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "amount,message",
    [
        ("499", "Minimum gift card amount is 500"),
        ("50001", "Maximum gift card amount is 50000"),
    ],
)
async def test_purchase_amount_bounds(client: AsyncClient, auth_headers, amount, message):
    response = await client.post("/api/v1/gift-cards/", json={"amount": amount}, headers=auth_headers)
    assert response.status_code == 422
    assert response.json()["detail"] == message


@pytest.mark.asyncio
async def test_purchase_rejects_bad_email(client: AsyncClient, auth_headers):
    response = await client.post(
        "/api/v1/gift-cards/",
        json={"amount": "1000", "recipient_email": "not-an-email"},
        headers=auth_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_validate_and_balance_are_public(client: AsyncClient, auth_headers):
    card = await purchase(client, auth_headers)

    response = await client.get(f"/api/v1/gift-cards/{card['code'].lower()}/validate")
    assert response.status_code == 200
    data = response.json()
    assert data["is_valid"] is True
    assert Decimal(data["balance"]) == Decimal("1000")

    response = await client.get(f"/api/v1/gift-cards/{card['code']}/balance")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "Active"
    assert Decimal(data["original_amount"]) == Decimal("1000")
    assert 364 <= data["days_until_expiry"] <= 365


@pytest.mark.asyncio
async def test_validate_unknown_code(client: AsyncClient):
    response = await client.get("/api/v1/gift-cards/FB-0000-0000-0000/validate")
    assert response.status_code == 200
    assert response.json()["error_message"] == "Invalid gift card code"

    response = await client.get("/api/v1/gift-cards/FB-0000-0000-0000/balance")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_validate_records_lazy_expiry(client: AsyncClient, test_user, db_session, session_factory):
    card = GiftCard.create(Decimal("1000"), purchased_by=test_user.id)
    card.expires_at = utcnow() - timedelta(days=1)
    db_session.add(card)
    await db_session.commit()

    response = await client.get(f"/api/v1/gift-cards/{card.code}/validate")
    data = response.json()
    assert data["is_valid"] is False
    assert data["error_message"] == "This gift card has expired"

    async with session_factory() as session:
        stored = await session.get(GiftCard, card.id)
    assert stored.status == GiftCardStatus.EXPIRED


@pytest.mark.asyncio
async def test_apply_expired_card_records_expiry(
    client: AsyncClient, auth_headers, test_user, make_booking, db_session, session_factory
):
    card = GiftCard.create(Decimal("1000"), purchased_by=test_user.id)
    card.expires_at = utcnow() - timedelta(days=1)
    db_session.add(card)
    await db_session.commit()
    booking = await make_booking(test_user)

    response = await client.post(
        "/api/v1/gift-cards/apply",
        json={"code": card.code, "booking_id": str(booking.id)},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "This gift card has expired"

    async with session_factory() as session:
        stored = await session.get(GiftCard, card.id)
        ledger = (await session.execute(select(GiftCardTransaction))).scalars().all()
    assert stored.status == GiftCardStatus.EXPIRED
    assert stored.balance == Decimal("1000")
    assert ledger == []


@pytest.mark.asyncio
async def test_apply_partial_balance(client: AsyncClient, auth_headers, test_user, make_booking, session_factory):
    card = await purchase(client, auth_headers, "5000")
    booking = await make_booking(test_user)

    response = await client.post(
        "/api/v1/gift-cards/apply",
        json={"code": card["code"], "booking_id": str(booking.id)},
        headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert Decimal(data["amount_applied"]) == Decimal("2000")
    assert Decimal(data["remaining_balance"]) == Decimal("3000")
    assert data["gift_card_status"] == "Active"

    async with session_factory() as session:
        rows = (await session.execute(select(GiftCardTransaction))).scalars().all()
    assert len(rows) == 1
    assert rows[0].booking_id == booking.id
    assert rows[0].balance_after == Decimal("3000")


@pytest.mark.asyncio
async def test_apply_exhausts_card(client: AsyncClient, auth_headers, test_user, make_booking):
    card = await purchase(client, auth_headers, "1000")
    booking = await make_booking(test_user)
    body = {"code": card["code"], "booking_id": str(booking.id)}

    response = await client.post("/api/v1/gift-cards/apply", json=body, headers=auth_headers)
    assert response.status_code == 200
    assert Decimal(response.json()["amount_applied"]) == Decimal("1000")
    assert response.json()["gift_card_status"] == "Redeemed"

    response = await client.post("/api/v1/gift-cards/apply", json=body, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "This gift card has been fully redeemed"


@pytest.mark.asyncio
async def test_apply_to_paid_booking_rejected(
    client: AsyncClient, auth_headers, test_user, make_booking, make_payment, db_session, session_factory
):
    card = await purchase(client, auth_headers, "1000")
    booking = await make_booking(test_user)
    payment = await make_payment(booking)
    payment.mark_as_completed("pay_paid123")
    await db_session.commit()

    response = await client.post(
        "/api/v1/gift-cards/apply",
        json={"code": card["code"], "booking_id": str(booking.id)},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot apply gift card to already paid booking"

    async with session_factory() as session:
        stored = await session.get(GiftCard, UUID(card["id"]))
    assert stored.balance == Decimal("1000")


@pytest.mark.asyncio
async def test_apply_to_other_users_booking_forbidden(client: AsyncClient, auth_headers, other_user, make_booking):
    card = await purchase(client, auth_headers)
    booking = await make_booking(other_user)

    response = await client.post(
        "/api/v1/gift-cards/apply",
        json={"code": card["code"], "booking_id": str(booking.id)},
        headers=auth_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_cancel_gift_card(client: AsyncClient, auth_headers, other_user):
    card = await purchase(client, auth_headers)

    response = await client.post(f"/api/v1/gift-cards/{card['code']}/cancel", headers=headers_for(other_user))
    assert response.status_code == 403

    response = await client.post(f"/api/v1/gift-cards/{card['code']}/cancel", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "Cancelled"

    response = await client.get(f"/api/v1/gift-cards/{card['code']}/validate")
    assert response.json()["error_message"] == "This gift card has been cancelled"


@pytest.mark.asyncio
async def test_cancel_redeemed_card_conflicts(client: AsyncClient, auth_headers, test_user, make_booking):
    card = await purchase(client, auth_headers, "1000")
    booking = await make_booking(test_user)
    await client.post(
        "/api/v1/gift-cards/apply",
        json={"code": card["code"], "booking_id": str(booking.id)},
        headers=auth_headers,
    )

    response = await client.post(f"/api/v1/gift-cards/{card['code']}/cancel", headers=auth_headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_list_purchased_and_received(client: AsyncClient, auth_headers, test_user, other_user):
    mine = await purchase(client, auth_headers)
    gifted = await purchase(client, headers_for(other_user), recipient_email=test_user.email)
    theirs = await purchase(client, headers_for(other_user))

    response = await client.get("/api/v1/gift-cards/", headers=auth_headers)
    assert response.status_code == 200
    codes = {c["code"] for c in response.json()}
    assert codes == {mine["code"], gifted["code"]}

    response = await client.get("/api/v1/gift-cards/", headers=headers_for(other_user))
    codes = {c["code"] for c in response.json()}
    assert codes == {gifted["code"], theirs["code"]}
