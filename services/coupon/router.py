"""
services/coupon/router.py
Coupon administration and public code validation.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.coupon.validator import validate_coupon
from shared.exceptions.exceptions import Conflict, NotFound
from shared.middleware.auth import AuthorizedContext, get_token_data, require_admin
from shared.models.models import Coupon, User
from shared.schemas.schemas import (
    CouponCreateRequest,
    CouponResponse,
    CouponUpdateRequest,
    CouponValidateRequest,
    CouponValidateResponse,
    MessageResponse,
)
from shared.utils.validators import parse_object_id

router = APIRouter(prefix="/coupons", tags=["Coupons"])


async def _get_coupon_or_404(coupon_id: str, db: AsyncSession) -> Coupon:
    coupon = await db.scalar(select(Coupon).where(Coupon.id == parse_object_id(coupon_id, "Coupon")))
    if not coupon:
        raise NotFound("Coupon")
    return coupon


def _is_unique_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig).lower()
    return "unique" in message or "duplicate key" in message


async def _commit_unique_code(db: AsyncSession) -> None:
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if not _is_unique_violation(e):
            raise
        raise Conflict("Coupon code already exists") from e


@router.get("", response_model=list[CouponResponse])
async def list_coupons(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Coupon).order_by(Coupon.created_at.desc()))
    return [CouponResponse.model_validate(c) for c in result.scalars()]


@router.post("", response_model=CouponResponse, status_code=status.HTTP_201_CREATED)
async def create_coupon(
    data: CouponCreateRequest,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    existing = await db.scalar(select(Coupon).where(Coupon.code == data.code))
    if existing:
        raise Conflict("Coupon code already exists")

    coupon = Coupon(**data.model_dump())
    db.add(coupon)
    await _commit_unique_code(db)
    await db.refresh(coupon)
    return CouponResponse.model_validate(coupon)


@router.patch("/{coupon_id}", response_model=CouponResponse)
async def update_coupon(
    coupon_id: str,
    data: CouponUpdateRequest,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Partial update. Only fields present in the body are changed."""
    coupon = await _get_coupon_or_404(coupon_id, db)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(coupon, field, value)
    await _commit_unique_code(db)
    await db.refresh(coupon)
    return CouponResponse.model_validate(coupon)


@router.delete("/{coupon_id}", response_model=MessageResponse)
async def delete_coupon(
    coupon_id: str,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    coupon = await _get_coupon_or_404(coupon_id, db)
    await db.delete(coupon)
    await db.commit()
    return MessageResponse(message="Coupon deleted")


@router.post("/validate", response_model=CouponValidateResponse)
async def validate_coupon_code(
    data: CouponValidateRequest,
    ctx: AuthorizedContext = Depends(get_token_data),
    db: AsyncSession = Depends(get_db),
):
    """Always 200; an unknown or inactive code answers valid=false."""
    result = await validate_coupon(db, data.code)
    return CouponValidateResponse(
        valid=result.valid,
        discount_percentage=float(result.discount_percentage) if result.valid else None,
    )
