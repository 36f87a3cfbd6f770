"""
tests/test_payments.py
Tests for Stripe intent creation, payment recording (atomic booking
confirmation), and payment history ordering.
"""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest
import stripe
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from services.payment.gateway import StripeGateway, get_payment_gateway
from services.payment.recorder import record_payment
from shared.exceptions.exceptions import InvalidStateTransition, StorageFailure
from shared.models.models import (
    Booking,
    BookingStatus,
    Coupon,
    Payment,
    PaymentStatus,
    User,
    UserRole,
)
from tests.conftest import auth_headers


async def _approved_booking(db: AsyncSession, email: str, **overrides) -> Booking:
    booking = Booking(
        user_email=email,
        court_type="Squash",
        slots=["18:00-19:00"],
        price=20,
        status=overrides.pop("status", BookingStatus.APPROVED),
        **overrides,
    )
    db.add(booking)
    await db.commit()
    await db.refresh(booking)
    return booking


def _mock_intent(intent_id="pi_test_123", secret="pi_test_123_secret_abc"):
    intent = MagicMock()
    intent.id = intent_id
    intent.client_secret = secret
    return intent


# ── Payment Intent ─────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_create_intent_requires_auth(client: AsyncClient):
    response = await client.post("/payments/intent", json={"amount": 2000})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_intent_success(client: AsyncClient, user: User):
    with patch("stripe.PaymentIntent.create", return_value=_mock_intent()) as mock_create:
        response = await client.post(
            "/payments/intent", headers=auth_headers(user), json={"amount": 2000}
        )

    assert response.status_code == 200
    data = response.json()
    assert data["client_secret"] == "pi_test_123_secret_abc"
    assert data["amount"] == 2000
    assert data["currency"] == "usd"
    assert data["discount_percentage"] is None

    kwargs = mock_create.call_args.kwargs
    assert kwargs["amount"] == 2000
    assert kwargs["currency"] == "usd"
    assert kwargs["payment_method_types"] == ["card"]


@pytest.mark.asyncio
async def test_create_intent_applies_coupon(client: AsyncClient, user: User, db: AsyncSession):
    db.add(Coupon(code="SAVE10", discount_percentage=10))
    await db.commit()

    with patch("stripe.PaymentIntent.create", return_value=_mock_intent()) as mock_create:
        response = await client.post(
            "/payments/intent",
            headers=auth_headers(user),
            json={"amount": 2000, "coupon_code": "SAVE10"},
        )

    assert response.status_code == 200
    assert response.json()["amount"] == 1800
    assert response.json()["discount_percentage"] == 10
    assert mock_create.call_args.kwargs["amount"] == 1800


@pytest.mark.asyncio
async def test_create_intent_rejects_invalid_coupon(client: AsyncClient, user: User):
    with patch("stripe.PaymentIntent.create") as mock_create:
        response = await client.post(
            "/payments/intent",
            headers=auth_headers(user),
            json={"amount": 2000, "coupon_code": "BOGUS"},
        )
    assert response.status_code == 422
    assert response.json()["detail"] == "Invalid coupon code"
    mock_create.assert_not_called()


@pytest.mark.asyncio
async def test_create_intent_gateway_error(client: AsyncClient, user: User):
    with patch("stripe.PaymentIntent.create", side_effect=stripe.StripeError("card declined")):
        response = await client.post(
            "/payments/intent", headers=auth_headers(user), json={"amount": 2000}
        )
    assert response.status_code == 502


@pytest.mark.asyncio
async def test_create_intent_circuit_open(client: AsyncClient, user: User):
    breaker = StripeGateway().breaker
    breaker.open()
    try:
        with patch("stripe.PaymentIntent.create") as mock_create:
            response = await client.post(
                "/payments/intent", headers=auth_headers(user), json={"amount": 2000}
            )
        assert response.status_code == 503
        mock_create.assert_not_called()
    finally:
        breaker.close()


@pytest.mark.asyncio
async def test_create_intent_without_stripe_key(client: AsyncClient, user: User):
    from main import app

    app.dependency_overrides[get_payment_gateway] = lambda: StripeGateway(secret_key="")
    try:
        response = await client.post(
            "/payments/intent", headers=auth_headers(user), json={"amount": 2000}
        )
    finally:
        app.dependency_overrides.pop(get_payment_gateway, None)
    assert response.status_code == 503


@pytest.mark.asyncio
async def test_create_intent_rejects_non_positive_amount(client: AsyncClient, user: User):
    response = await client.post("/payments/intent", headers=auth_headers(user), json={"amount": 0})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_rejected_intents_leave_breaker_closed(client: AsyncClient, user: User):
    """Stripe refusing bad input is not an outage; later valid intents still go through."""
    breaker = StripeGateway().breaker
    breaker.close()
    rejected = stripe.InvalidRequestError("Amount must be at least 50 cents", "amount")

    with patch("stripe.PaymentIntent.create", side_effect=rejected):
        for _ in range(settings.GATEWAY_BREAKER_FAIL_MAX + 1):
            response = await client.post(
                "/payments/intent", headers=auth_headers(user), json={"amount": 1}
            )
            assert response.status_code == 502

    assert breaker.current_state == "closed"

    with patch("stripe.PaymentIntent.create", return_value=_mock_intent()):
        response = await client.post(
            "/payments/intent", headers=auth_headers(user), json={"amount": 2000}
        )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_create_intent_full_discount_rejected(
    client: AsyncClient, user: User, db: AsyncSession
):
    db.add(Coupon(code="FREE", discount_percentage=100))
    await db.commit()

    with patch("stripe.PaymentIntent.create") as mock_create:
        response = await client.post(
            "/payments/intent",
            headers=auth_headers(user),
            json={"amount": 2000, "coupon_code": "FREE"},
        )
    assert response.status_code == 422
    assert response.json()["detail"] == "Discounted amount must be greater than zero"
    mock_create.assert_not_called()


# ── Record Payment ─────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_record_payment_confirms_booking(
    client: AsyncClient, user: User, db: AsyncSession
):
    booking = await _approved_booking(db, user.email)

    response = await client.post(
        "/payments",
        headers=auth_headers(user),
        json={
            "booking_id": str(booking.id),
            "amount_paid": 18,
            "coupon_used": "SAVE10",
            "payment_intent_id": "pi_abc",
        },
    )
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "paid"
    assert data["amount_paid"] == 18
    assert data["coupon_used"] == "SAVE10"
    assert data["user_email"] == user.email

    await db.refresh(booking)
    assert booking.status == BookingStatus.CONFIRMED
    assert booking.payment_status == PaymentStatus.PAID


@pytest.mark.asyncio
async def test_record_payment_twice_conflicts(
    client: AsyncClient, user: User, db: AsyncSession
):
    """A confirmed booking cannot be paid again; the ledger keeps one entry."""
    booking = await _approved_booking(db, user.email)
    payload = {"booking_id": str(booking.id), "amount_paid": 20, "payment_intent_id": "pi_once"}

    first = await client.post("/payments", headers=auth_headers(user), json=payload)
    second = await client.post("/payments", headers=auth_headers(user), json=payload)

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json()["detail"] == "Booking is already paid"

    count = (await db.execute(select(Payment).where(Payment.booking_id == booking.id))).scalars().all()
    assert len(count) == 1


@pytest.mark.asyncio
async def test_record_payment_from_stale_read_conflicts(
    session_factory, user: User, db: AsyncSession
):
    """Two requests that both loaded the booking as APPROVED: only one may confirm it."""
    booking = await _approved_booking(db, user.email)

    async with session_factory() as first, session_factory() as second:
        first_copy = await first.get(Booking, booking.id)
        second_copy = await second.get(Booking, booking.id)
        assert first_copy.status == second_copy.status == BookingStatus.APPROVED

        await record_payment(
            first,
            booking_id=booking.id,
            user_email=user.email,
            amount_paid=20,
            payment_intent_id="pi_first",
            booking=first_copy,
        )
        with pytest.raises(InvalidStateTransition) as exc_info:
            await record_payment(
                second,
                booking_id=booking.id,
                user_email=user.email,
                amount_paid=20,
                payment_intent_id="pi_second",
                booking=second_copy,
            )
        assert exc_info.value.detail == "Booking is already paid"

    payments = (await db.execute(select(Payment).where(Payment.booking_id == booking.id))).scalars().all()
    assert [p.payment_intent_id for p in payments] == ["pi_first"]
    await db.refresh(booking)
    assert booking.status == BookingStatus.CONFIRMED
    assert booking.payment_status == PaymentStatus.PAID


@pytest.mark.asyncio
async def test_record_payment_for_pending_booking_conflicts(
    client: AsyncClient, user: User, db: AsyncSession
):
    booking = await _approved_booking(db, user.email, status=BookingStatus.PENDING)
    response = await client.post(
        "/payments",
        headers=auth_headers(user),
        json={"booking_id": str(booking.id), "amount_paid": 20, "payment_intent_id": "pi_early"},
    )
    assert response.status_code == 409

    await db.refresh(booking)
    assert booking.status == BookingStatus.PENDING
    assert booking.payment_status == PaymentStatus.UNPAID


@pytest.mark.asyncio
async def test_record_payment_missing_booking(client: AsyncClient, user: User):
    response = await client.post(
        "/payments",
        headers=auth_headers(user),
        json={"booking_id": str(uuid.uuid4()), "amount_paid": 20, "payment_intent_id": "pi_x"},
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_record_payment_invalid_booking_id(client: AsyncClient, user: User):
    response = await client.post(
        "/payments",
        headers=auth_headers(user),
        json={"booking_id": "abc", "amount_paid": 20, "payment_intent_id": "pi_x"},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_record_payment_for_someone_else_forbidden(
    client: AsyncClient, user: User, other_user: User, db: AsyncSession
):
    booking = await _approved_booking(db, user.email)
    response = await client.post(
        "/payments",
        headers=auth_headers(other_user),
        json={"booking_id": str(booking.id), "amount_paid": 20, "payment_intent_id": "pi_x"},
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_can_record_payment(
    client: AsyncClient, user: User, admin_user: User, db: AsyncSession
):
    """Admin-recorded payments are still attributed to the booking owner."""
    booking = await _approved_booking(db, user.email)
    response = await client.post(
        "/payments",
        headers=auth_headers(admin_user),
        json={"booking_id": str(booking.id), "amount_paid": 20, "payment_intent_id": "pi_admin"},
    )
    assert response.status_code == 201
    assert response.json()["user_email"] == user.email


@pytest.mark.asyncio
async def test_record_payment_rolls_back_on_storage_failure(
    session_factory, user: User, db: AsyncSession
):
    """If the commit fails, neither the payment nor the booking change lands."""
    booking = await _approved_booking(db, user.email)

    async with session_factory() as session:
        with patch.object(session, "commit", side_effect=SQLAlchemyError("disk full")):
            with pytest.raises(StorageFailure):
                await record_payment(
                    session,
                    booking_id=booking.id,
                    user_email=user.email,
                    amount_paid=20,
                    payment_intent_id="pi_fail",
                )

    await db.refresh(booking)
    assert booking.status == BookingStatus.APPROVED
    assert booking.payment_status == PaymentStatus.UNPAID
    payments = (await db.execute(select(Payment))).scalars().all()
    assert payments == []


# ── History ────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_payment_history_newest_first(
    client: AsyncClient, user: User, db: AsyncSession
):
    now = datetime.now(timezone.utc)
    for days_ago, intent in ((3, "pi_old"), (0, "pi_new"), (1, "pi_mid")):
        db.add(Payment(
            booking_id=uuid.uuid4(),
            user_email=user.email,
            amount_paid=10,
            payment_intent_id=intent,
            date=now - timedelta(days=days_ago),
        ))
    await db.commit()

    response = await client.get(f"/payments/{user.email}", headers=auth_headers(user))
    assert response.status_code == 200
    assert [p["payment_intent_id"] for p in response.json()] == ["pi_new", "pi_mid", "pi_old"]


@pytest.mark.asyncio
async def test_payment_history_other_user_forbidden(
    client: AsyncClient, user: User, other_user: User
):
    response = await client.get(f"/payments/{user.email}", headers=auth_headers(other_user))
    assert response.status_code == 403


# ── End to End ─────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_booking_to_payment_flow(
    client: AsyncClient, user: User, admin_user: User, db: AsyncSession
):
    """create → approve (role becomes member) → pay → confirmed/paid with one ledger entry."""
    created = await client.post(
        "/bookings",
        headers=auth_headers(user),
        json={"court_type": "Tennis", "slots": ["10:00-11:00"], "price": 20},
    )
    booking_id = created.json()["inserted_id"]

    approved = await client.patch(f"/bookings/{booking_id}/approve", headers=auth_headers(admin_user))
    assert approved.status_code == 200

    role = await client.get(f"/users/role/{user.email}")
    assert role.json()["role"] == "member"

    paid = await client.post(
        "/payments",
        headers=auth_headers(user),
        json={"booking_id": booking_id, "amount_paid": 20, "payment_intent_id": "pi_123"},
    )
    assert paid.status_code == 201

    booking = await client.get(f"/bookings/{booking_id}", headers=auth_headers(user))
    assert booking.json()["status"] == "confirmed"
    assert booking.json()["payment_status"] == "paid"

    history = await client.get(f"/payments/{user.email}", headers=auth_headers(user))
    assert len(history.json()) == 1
    assert history.json()[0]["amount_paid"] == 20
    assert history.json()[0]["payment_intent_id"] == "pi_123"

    confirmed = await client.get(f"/bookings/confirmed/{user.email}", headers=auth_headers(user))
    assert confirmed.status_code == 200
    assert [b["id"] for b in confirmed.json()] == [booking_id]

    await db.refresh(user)
    assert user.role == UserRole.MEMBER
