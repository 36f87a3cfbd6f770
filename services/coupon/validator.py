"""
services/coupon/validator.py
Coupon lookup and discount arithmetic.
Coupons are unlimited-use: validation never mutates anything.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.models import Coupon, CouponStatus


@dataclass(frozen=True)
class CouponValidation:
    valid: bool
    discount_percentage: Optional[Decimal] = None


INVALID = CouponValidation(valid=False)


async def validate_coupon(db: AsyncSession, code: str) -> CouponValidation:
    """Exact, case-sensitive match on an ACTIVE coupon. Unknown and inactive look the same."""
    result = await db.execute(
        select(Coupon).where(Coupon.code == code, Coupon.status == CouponStatus.ACTIVE)
    )
    coupon = result.scalar_one_or_none()
    if not coupon:
        return INVALID
    return CouponValidation(valid=True, discount_percentage=Decimal(coupon.discount_percentage))


def apply_discount(amount: int, percentage) -> int:
    """
    Discounted amount in the smallest currency unit.
    Rounds half up and never goes below zero.
    """
    if not percentage:
        return amount
    discounted = Decimal(amount) * (Decimal(100) - Decimal(str(percentage))) / Decimal(100)
    return max(0, int(discounted.quantize(Decimal("1"), rounding=ROUND_HALF_UP)))
