"""
services/payment/router.py
Stripe intent creation, payment recording, and payment history.
Recording a payment is what moves a booking from APPROVED to CONFIRMED.
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.booking.lifecycle import get_booking_or_404
from services.coupon.validator import apply_discount, validate_coupon
from services.payment.gateway import StripeGateway, get_payment_gateway
from services.payment.recorder import payment_history, record_payment
from shared.exceptions.exceptions import ValidationFailure
from shared.middleware.auth import AuthorizedContext, ensure_self_or_admin, get_token_data
from shared.schemas.schemas import (
    PaymentIntentRequest,
    PaymentIntentResponse,
    PaymentRecordRequest,
    PaymentResponse,
)
from shared.utils.validators import normalize_email, parse_object_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])


# ── Payment Intent ────────────────────────────────────────────

@router.post("/intent", response_model=PaymentIntentResponse)
async def create_payment_intent(
    data: PaymentIntentRequest,
    ctx: AuthorizedContext = Depends(get_token_data),
    db: AsyncSession = Depends(get_db),
    gateway: StripeGateway = Depends(get_payment_gateway),
):
    """
    Create a card PaymentIntent and return its client secret.
    A coupon code is re-validated here; the client-side check is not trusted.
    """
    amount = data.amount
    discount = None
    if data.coupon_code:
        coupon = await validate_coupon(db, data.coupon_code)
        if not coupon.valid:
            raise ValidationFailure("Invalid coupon code")
        discount = float(coupon.discount_percentage)
        amount = apply_discount(data.amount, coupon.discount_percentage)
        if amount <= 0:
            raise ValidationFailure("Discounted amount must be greater than zero")

    intent = await run_in_threadpool(
        gateway.create_payment_intent,
        amount,
        {"user_email": ctx.email, "coupon_code": data.coupon_code or ""},
    )
    logger.info(f"Payment intent {intent.intent_id} created for {ctx.email} ({amount} {intent.currency})")

    return PaymentIntentResponse(
        client_secret=intent.client_secret,
        amount=intent.amount,
        currency=intent.currency,
        discount_percentage=discount,
    )


# ── Record Payment ────────────────────────────────────────────

@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(
    data: PaymentRecordRequest,
    ctx: AuthorizedContext = Depends(get_token_data),
    db: AsyncSession = Depends(get_db),
):
    """
    Record a completed payment for an APPROVED booking.
    The booking owner or an admin may record it.
    """
    booking = await get_booking_or_404(db, parse_object_id(data.booking_id, "Booking"))
    await ensure_self_or_admin(ctx, booking.user_email, db)

    payment = await record_payment(
        db,
        booking_id=booking.id,
        user_email=booking.user_email,
        amount_paid=data.amount_paid,
        payment_intent_id=data.payment_intent_id,
        coupon_used=data.coupon_used,
        date=data.date,
        booking=booking,
    )
    return PaymentResponse.model_validate(payment)


# ── History ───────────────────────────────────────────────────

@router.get("/{email}", response_model=list[PaymentResponse])
async def get_payment_history(
    email: str,
    ctx: AuthorizedContext = Depends(get_token_data),
    db: AsyncSession = Depends(get_db),
):
    """Payments for one user, newest first."""
    email = normalize_email(email)
    await ensure_self_or_admin(ctx, email, db)
    return [PaymentResponse.model_validate(p) for p in await payment_history(db, email)]
