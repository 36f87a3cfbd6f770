"""
services/admin/router.py
Admin dashboard counts.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from shared.middleware.auth import require_admin
from shared.models.models import Court, User, UserRole
from shared.schemas.schemas import AdminStatsResponse

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/stats", response_model=AdminStatsResponse)
async def get_stats(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    total_courts = await db.scalar(select(func.count(Court.id)))
    total_users = await db.scalar(select(func.count(User.id)))
    total_members = await db.scalar(
        select(func.count(User.id)).where(User.role == UserRole.MEMBER)
    )
    return AdminStatsResponse(
        total_courts=total_courts or 0,
        total_users=total_users or 0,
        total_members=total_members or 0,
    )
