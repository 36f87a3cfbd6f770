"""
services/payment/recorder.py
Payment ledger writes. The payment row and the booking's move to
CONFIRMED / PAID are committed together or not at all.
"""

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from services.booking.lifecycle import get_booking_or_404
from shared.exceptions.exceptions import InvalidStateTransition, StorageFailure
from shared.models.models import Booking, BookingStatus, Payment, PaymentStatus

logger = logging.getLogger(__name__)


def _assert_payable(booking: Booking) -> None:
    if booking.status == BookingStatus.CONFIRMED:
        raise InvalidStateTransition("Booking is already paid")
    if booking.status != BookingStatus.APPROVED:
        raise InvalidStateTransition("Booking must be approved before payment")


async def record_payment(
    db: AsyncSession,
    booking_id: uuid.UUID,
    user_email: str,
    amount_paid: Decimal,
    payment_intent_id: str,
    coupon_used: Optional[str] = None,
    date: Optional[datetime] = None,
    booking: Optional[Booking] = None,
) -> Payment:
    """Append a PAID ledger entry and confirm the booking in one transaction."""
    if booking is None:
        booking = await get_booking_or_404(db, booking_id)
    _assert_payable(booking)

    payment = Payment(
        booking_id=booking.id,
        user_email=user_email,
        amount_paid=Decimal(str(amount_paid)),
        coupon_used=coupon_used or None,
        payment_intent_id=payment_intent_id,
        status=PaymentStatus.PAID,
        date=date or datetime.now(timezone.utc),
    )

    try:
        # Only the request that still sees APPROVED in the database may confirm
        confirmed = await db.execute(
            update(Booking)
            .where(Booking.id == booking.id, Booking.status == BookingStatus.APPROVED)
            .values(status=BookingStatus.CONFIRMED, payment_status=PaymentStatus.PAID)
            .execution_options(synchronize_session=False)
        )
        if confirmed.rowcount == 0:
            await db.rollback()
            logger.warning(f"Booking {booking.id} was confirmed by another request")
            raise InvalidStateTransition("Booking is already paid")

        db.add(payment)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to record payment for booking {booking_id}", exc_info=True)
        raise StorageFailure("Failed to record payment") from e

    await db.refresh(payment)
    await db.refresh(booking)
    logger.info(
        f"Payment {payment.id} recorded for booking {booking.id} "
        f"({payment.amount_paid}, intent {payment_intent_id})"
    )
    return payment


async def payment_history(db: AsyncSession, user_email: str) -> List[Payment]:
    """All payments for one user, newest first."""
    result = await db.execute(
        select(Payment)
        .where(Payment.user_email == user_email)
        .order_by(Payment.date.desc())
    )
    return list(result.scalars().all())
