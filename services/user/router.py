"""
services/user/router.py
Account registration, role lookup, and the admin user directory.
"""

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from shared.middleware.auth import require_admin
from shared.models.models import User, UserRole
from shared.schemas.schemas import (
    RegisterResponse,
    UserCreateRequest,
    UserResponse,
    UserRoleResponse,
)
from shared.utils.validators import normalize_email

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    data: UserCreateRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """
    Register an account after the client signs in with Firebase.
    Idempotent: an existing email is left untouched and answered with 200.
    """
    existing = await db.scalar(select(User).where(User.email == data.email))
    if existing:
        response.status_code = status.HTTP_200_OK
        return RegisterResponse(message="User already exists")

    user = User(
        email=data.email,
        name=data.name,
        photo_url=data.photo_url,
        role=UserRole.USER,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return RegisterResponse(message="User created", inserted_id=user.id)


@router.get("/role/{email}", response_model=UserRoleResponse)
async def get_user_role(email: str, db: AsyncSession = Depends(get_db)):
    """Role for the given email; unknown accounts read as plain users."""
    user = await db.scalar(select(User).where(User.email == normalize_email(email)))
    return UserRoleResponse(role=user.role if user else UserRole.USER)


@router.get("", response_model=list[UserResponse])
async def list_users(
    search: str = Query("", max_length=100),
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """All users, optionally filtered by a case-insensitive name substring."""
    query = select(User)
    if search:
        query = query.where(User.name.icontains(search, autoescape=True))
    result = await db.execute(query.order_by(User.created_at.desc()))
    return [UserResponse.model_validate(u) for u in result.scalars()]
