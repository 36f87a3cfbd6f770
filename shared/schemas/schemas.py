"""
shared/schemas/schemas.py
All Pydantic v2 request/response schemas for the platform.
"""

import uuid
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from shared.models.models import BookingStatus, CouponStatus, PaymentStatus, UserRole
from shared.utils.validators import normalize_email


# ── Base ──────────────────────────────────────────────────────

class BaseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


def _reject_null(value):
    """PATCH bodies may omit a required column but never set it to null."""
    if value is None:
        raise ValueError("Field cannot be null")
    return value


class PaginatedResponse(BaseSchema):
    items: List[Any]
    total: int
    page: int
    page_size: int
    total_pages: int


# ── User ──────────────────────────────────────────────────────

class UserCreateRequest(BaseSchema):
    email: EmailStr
    name: Optional[str] = Field(None, max_length=255)
    photo_url: Optional[str] = None

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return normalize_email(v)


class UserResponse(BaseSchema):
    id: uuid.UUID
    email: str
    name: Optional[str]
    photo_url: Optional[str]
    role: UserRole
    membership_granted_date: Optional[datetime]
    created_at: datetime


class UserRoleResponse(BaseSchema):
    role: UserRole = UserRole.USER


class RegisterResponse(BaseSchema):
    message: str
    inserted_id: Optional[uuid.UUID] = None


# ── Member ────────────────────────────────────────────────────

class MembershipResponse(BaseSchema):
    email: str
    membership_granted_date: Optional[datetime]


# ── Court ─────────────────────────────────────────────────────

class CourtCreateRequest(BaseSchema):
    court_type: str = Field(..., min_length=1, max_length=100)
    image_url: Optional[str] = None
    slots: List[str] = Field(default_factory=list)
    price: float = Field(..., ge=0)
    featured: bool = False


class CourtUpdateRequest(BaseSchema):
    court_type: Optional[str] = Field(None, min_length=1, max_length=100)
    image_url: Optional[str] = None
    slots: Optional[List[str]] = None
    price: Optional[float] = Field(None, ge=0)
    featured: Optional[bool] = None

    not_null = field_validator("court_type", "slots", "price", "featured")(_reject_null)


class CourtResponse(BaseSchema):
    id: uuid.UUID
    court_type: str
    image_url: Optional[str]
    slots: List[str]
    price: float
    featured: bool


# ── Booking ───────────────────────────────────────────────────

class BookingCreateRequest(BaseSchema):
    court_type: str = Field(..., min_length=1, max_length=100)
    court_id: Optional[uuid.UUID] = None
    booking_date: Optional[str] = Field(None, pattern=r"^\d{4}-\d{2}-\d{2}$")
    slots: List[str] = Field(..., min_length=1)
    price: Optional[float] = Field(None, ge=0)

    @field_validator("slots")
    @classmethod
    def validate_slots(cls, v: List[str]) -> List[str]:
        if any(not s.strip() for s in v):
            raise ValueError("Slot labels must not be blank")
        return v


class BookingResponse(BaseSchema):
    id: uuid.UUID
    user_email: str
    court_id: Optional[uuid.UUID]
    court_type: str
    booking_date: Optional[str]
    slots: List[str]
    price: Optional[float]
    status: BookingStatus
    payment_status: PaymentStatus
    membership_granted_date: Optional[datetime]
    created_at: datetime


class BookingCreatedResponse(BaseSchema):
    inserted_id: uuid.UUID
    booking: BookingResponse


# ── Coupon ────────────────────────────────────────────────────

class CouponCreateRequest(BaseSchema):
    code: str = Field(..., min_length=1, max_length=64)
    discount_percentage: float = Field(..., gt=0, le=100)
    description: Optional[str] = Field(None, max_length=255)
    status: CouponStatus = CouponStatus.ACTIVE


class CouponUpdateRequest(BaseSchema):
    code: Optional[str] = Field(None, min_length=1, max_length=64)
    discount_percentage: Optional[float] = Field(None, gt=0, le=100)
    description: Optional[str] = Field(None, max_length=255)
    status: Optional[CouponStatus] = None

    not_null = field_validator("code", "discount_percentage", "status")(_reject_null)


class CouponResponse(BaseSchema):
    id: uuid.UUID
    code: str
    discount_percentage: float
    description: Optional[str]
    status: CouponStatus


class CouponValidateRequest(BaseSchema):
    code: str = Field(..., min_length=1)


class CouponValidateResponse(BaseSchema):
    valid: bool
    discount_percentage: Optional[float] = None


# ── Payment ───────────────────────────────────────────────────

class PaymentIntentRequest(BaseSchema):
    amount: int = Field(..., gt=0, description="Amount in the smallest currency unit")
    coupon_code: Optional[str] = None


class PaymentIntentResponse(BaseSchema):
    client_secret: str
    amount: int
    currency: str
    discount_percentage: Optional[float] = None


class PaymentRecordRequest(BaseSchema):
    booking_id: str
    amount_paid: float = Field(..., ge=0)
    coupon_used: Optional[str] = None
    payment_intent_id: str = Field(..., min_length=1)
    date: Optional[datetime] = None


class PaymentResponse(BaseSchema):
    id: uuid.UUID
    booking_id: uuid.UUID
    user_email: str
    amount_paid: float
    coupon_used: Optional[str]
    payment_intent_id: str
    status: PaymentStatus
    date: datetime


# ── Announcement ──────────────────────────────────────────────

class AnnouncementCreateRequest(BaseSchema):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)


class AnnouncementUpdateRequest(BaseSchema):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)

    not_null = field_validator("title", "description")(_reject_null)


class AnnouncementResponse(BaseSchema):
    id: uuid.UUID
    title: str
    description: str
    date: datetime


# ── Event ─────────────────────────────────────────────────────

class EventCreateRequest(BaseSchema):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)
    event_date: Optional[datetime] = None


class EventUpdateRequest(BaseSchema):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)
    event_date: Optional[datetime] = None

    not_null = field_validator("title")(_reject_null)


class EventResponse(BaseSchema):
    id: uuid.UUID
    title: str
    description: Optional[str]
    location: Optional[str]
    event_date: Optional[datetime]
    created_at: datetime


# ── Review ────────────────────────────────────────────────────

class ReviewCreateRequest(BaseSchema):
    name: str = Field(..., min_length=1, max_length=255)
    photo_url: Optional[str] = None
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)


class ReviewResponse(BaseSchema):
    id: uuid.UUID
    name: str
    photo_url: Optional[str]
    rating: int
    comment: Optional[str]
    date: datetime


# ── Admin ─────────────────────────────────────────────────────

class AdminStatsResponse(BaseSchema):
    total_courts: int
    total_users: int
    total_members: int


# ── Generic ───────────────────────────────────────────────────

class MessageResponse(BaseSchema):
    message: str
    success: bool = True
