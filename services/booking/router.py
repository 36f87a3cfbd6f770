"""
services/booking/router.py
Court booking endpoints. Lifecycle rules live in services/booking/lifecycle.py.
States: PENDING → APPROVED (admin) → CONFIRMED (payment)
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.booking import lifecycle
from shared.exceptions.exceptions import Forbidden
from shared.middleware.auth import (
    AuthorizedContext,
    ensure_self_or_admin,
    get_token_data,
    require_admin,
    require_member,
)
from shared.models.models import BookingStatus, User
from shared.schemas.schemas import (
    BookingCreateRequest,
    BookingCreatedResponse,
    BookingResponse,
    MessageResponse,
)
from shared.utils.validators import normalize_email, parse_object_id

router = APIRouter(prefix="/bookings", tags=["Bookings"])


def _to_response(bookings) -> list[BookingResponse]:
    return [BookingResponse.model_validate(b) for b in bookings]


# ── Booking Creation ──────────────────────────────────────────

@router.post("", response_model=BookingCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    data: BookingCreateRequest,
    ctx: AuthorizedContext = Depends(get_token_data),
    db: AsyncSession = Depends(get_db),
):
    """Request a court. The booking is owned by the token's email and starts PENDING."""
    booking = await lifecycle.create_booking(db, ctx.email, data)
    return BookingCreatedResponse(
        inserted_id=booking.id,
        booking=BookingResponse.model_validate(booking),
    )


# ── Admin Queues ──────────────────────────────────────────────

@router.get("/pending", response_model=list[BookingResponse])
async def list_pending_bookings(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Approval queue across all users."""
    return _to_response(await lifecycle.list_bookings(db, BookingStatus.PENDING))


@router.get("/confirmed", response_model=list[BookingResponse])
async def list_confirmed_bookings(
    search: str = Query("", max_length=100),
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Paid bookings, optionally filtered by a case-insensitive court type substring."""
    bookings = await lifecycle.list_bookings(db, BookingStatus.CONFIRMED, search=search or None)
    return _to_response(bookings)


# ── Owner Views ───────────────────────────────────────────────

@router.get("/pending/{email}", response_model=list[BookingResponse])
async def list_user_pending_bookings(
    email: str,
    ctx: AuthorizedContext = Depends(get_token_data),
    db: AsyncSession = Depends(get_db),
):
    email = normalize_email(email)
    await ensure_self_or_admin(ctx, email, db)
    return _to_response(await lifecycle.list_bookings(db, BookingStatus.PENDING, user_email=email))


@router.get("/approved/{email}", response_model=list[BookingResponse])
async def list_user_approved_bookings(
    email: str,
    ctx: AuthorizedContext = Depends(get_token_data),
    db: AsyncSession = Depends(get_db),
):
    """Approved bookings awaiting payment."""
    email = normalize_email(email)
    await ensure_self_or_admin(ctx, email, db)
    return _to_response(await lifecycle.list_bookings(db, BookingStatus.APPROVED, user_email=email))


@router.get("/confirmed/{email}", response_model=list[BookingResponse])
async def list_user_confirmed_bookings(
    email: str,
    current_user: User = Depends(require_member),
    db: AsyncSession = Depends(get_db),
):
    """Members only, and only their own confirmed bookings."""
    email = normalize_email(email)
    if current_user.email != email:
        raise Forbidden()
    return _to_response(await lifecycle.list_bookings(db, BookingStatus.CONFIRMED, user_email=email))


# ── Single Booking ────────────────────────────────────────────

@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    ctx: AuthorizedContext = Depends(get_token_data),
    db: AsyncSession = Depends(get_db),
):
    booking = await lifecycle.get_booking_or_404(db, parse_object_id(booking_id, "Booking"))
    return BookingResponse.model_validate(booking)


@router.patch("/{booking_id}/approve", response_model=BookingResponse)
async def approve_booking(
    booking_id: str,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Admin approval. PENDING → APPROVED; re-approving an APPROVED booking is a no-op.
    The owner becomes a member on first approval.
    """
    booking = await lifecycle.approve_booking(db, parse_object_id(booking_id, "Booking"))
    return BookingResponse.model_validate(booking)


@router.delete("/{booking_id}", response_model=MessageResponse)
async def delete_booking(
    booking_id: str,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await lifecycle.delete_booking(db, parse_object_id(booking_id, "Booking"))
    return MessageResponse(message="Booking deleted")
