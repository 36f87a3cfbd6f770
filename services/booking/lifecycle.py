"""
services/booking/lifecycle.py
Booking state machine.
States: PENDING → APPROVED → CONFIRMED. Deletion removes a booking from any state.
APPROVED → APPROVED is allowed so a repeated approval is a no-op success.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from services.member.membership import grant_membership
from shared.exceptions.exceptions import InvalidStateTransition, NotFound, StorageFailure
from shared.models.models import Booking, BookingStatus, PaymentStatus, User, UserRole
from shared.schemas.schemas import BookingCreateRequest

logger = logging.getLogger(__name__)

BOOKING_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.APPROVED},
    BookingStatus.APPROVED: {BookingStatus.APPROVED, BookingStatus.CONFIRMED},
    BookingStatus.CONFIRMED: set(),
}


def assert_booking_transition(current: BookingStatus, target: BookingStatus) -> None:
    allowed = BOOKING_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise InvalidStateTransition(
            f"Invalid booking transition: {current.value} -> {target.value}"
        )


# ── Writes ────────────────────────────────────────────────────

async def create_booking(
    db: AsyncSession,
    user_email: str,
    data: BookingCreateRequest,
) -> Booking:
    """Insert a PENDING / UNPAID booking. No slot overlap checks."""
    booking = Booking(
        user_email=user_email,
        court_id=data.court_id,
        court_type=data.court_type,
        booking_date=data.booking_date,
        slots=list(data.slots),
        price=data.price,
        status=BookingStatus.PENDING,
        payment_status=PaymentStatus.UNPAID,
    )
    db.add(booking)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to create booking for {user_email}", exc_info=True)
        raise StorageFailure("Failed to create booking") from e
    await db.refresh(booking)
    logger.info(f"Booking {booking.id} created for {user_email}")
    return booking


async def approve_booking(db: AsyncSession, booking_id: uuid.UUID) -> Booking:
    """
    PENDING → APPROVED, then grant membership to a non-member owner.
    The grant date is copied onto the booking. A missing owner skips the grant.
    """
    booking = await get_booking_or_404(db, booking_id)
    assert_booking_transition(booking.status, BookingStatus.APPROVED)

    booking.status = BookingStatus.APPROVED

    result = await db.execute(select(User).where(User.email == booking.user_email))
    owner = result.scalar_one_or_none()
    if owner is None:
        logger.warning(f"Booking {booking.id} approved but owner {booking.user_email} has no account")
    elif owner.role != UserRole.MEMBER:
        booking.membership_granted_date = await grant_membership(db, owner)

    await db.commit()
    await db.refresh(booking)
    logger.info(f"Booking {booking.id} approved")
    return booking


async def delete_booking(db: AsyncSession, booking_id: uuid.UUID) -> None:
    """Remove a booking in any state. Payment records are left untouched."""
    booking = await get_booking_or_404(db, booking_id)
    await db.delete(booking)
    await db.commit()
    logger.info(f"Booking {booking_id} deleted")


# ── Reads ─────────────────────────────────────────────────────

async def get_booking_or_404(db: AsyncSession, booking_id: uuid.UUID) -> Booking:
    result = await db.execute(select(Booking).where(Booking.id == booking_id))
    booking = result.scalar_one_or_none()
    if not booking:
        raise NotFound("Booking")
    return booking


async def list_bookings(
    db: AsyncSession,
    status: BookingStatus,
    user_email: Optional[str] = None,
    search: Optional[str] = None,
) -> List[Booking]:
    query = select(Booking).where(Booking.status == status)
    if user_email is not None:
        query = query.where(Booking.user_email == user_email)
    if search:
        query = query.where(Booking.court_type.icontains(search, autoescape=True))
    result = await db.execute(query.order_by(Booking.created_at.desc()))
    return list(result.scalars().all())
