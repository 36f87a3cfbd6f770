"""
services/member/router.py
Member directory and membership lookups.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from shared.exceptions.exceptions import NotFound
from shared.middleware.auth import AuthorizedContext, get_token_data, require_admin
from shared.models.models import User, UserRole
from shared.schemas.schemas import MembershipResponse, MessageResponse, UserResponse
from shared.utils.validators import normalize_email

router = APIRouter(prefix="/members", tags=["Members"])


@router.get("", response_model=list[UserResponse])
async def list_members(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(User)
        .where(User.role == UserRole.MEMBER)
        .order_by(User.membership_granted_date.desc())
    )
    return [UserResponse.model_validate(u) for u in result.scalars()]


@router.get("/{email}", response_model=MembershipResponse)
async def get_membership(
    email: str,
    ctx: AuthorizedContext = Depends(get_token_data),
    db: AsyncSession = Depends(get_db),
):
    """Membership grant date, or 404 when the account was never granted membership."""
    email = normalize_email(email)
    user = await db.scalar(select(User).where(User.email == email))
    if not user or not user.membership_granted_date:
        raise NotFound(detail="Not a member")
    return MembershipResponse(email=user.email, membership_granted_date=user.membership_granted_date)


@router.delete("/{email}", response_model=MessageResponse)
async def delete_member(
    email: str,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Remove the user record. Bookings and payments keep their email reference."""
    email = normalize_email(email)
    user = await db.scalar(select(User).where(User.email == email))
    if not user:
        raise NotFound("Member")
    await db.delete(user)
    await db.commit()
    return MessageResponse(message="Member deleted successfully")
