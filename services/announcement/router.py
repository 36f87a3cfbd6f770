"""
services/announcement/router.py
Club announcements, newest first. Writes are admin-only.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from shared.exceptions.exceptions import NotFound
from shared.middleware.auth import require_admin
from shared.models.models import Announcement, User
from shared.schemas.schemas import (
    AnnouncementCreateRequest,
    AnnouncementResponse,
    AnnouncementUpdateRequest,
    MessageResponse,
)
from shared.utils.validators import parse_object_id

router = APIRouter(prefix="/announcements", tags=["Announcements"])


async def _get_announcement_or_404(announcement_id: str, db: AsyncSession) -> Announcement:
    announcement = await db.scalar(
        select(Announcement).where(Announcement.id == parse_object_id(announcement_id, "Announcement"))
    )
    if not announcement:
        raise NotFound("Announcement")
    return announcement


@router.get("", response_model=list[AnnouncementResponse])
async def list_announcements(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Announcement).order_by(Announcement.date.desc()))
    return [AnnouncementResponse.model_validate(a) for a in result.scalars()]


@router.post("", response_model=AnnouncementResponse, status_code=status.HTTP_201_CREATED)
async def create_announcement(
    data: AnnouncementCreateRequest,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """The date is stamped by the server."""
    announcement = Announcement(**data.model_dump(), date=datetime.now(timezone.utc))
    db.add(announcement)
    await db.commit()
    await db.refresh(announcement)
    return AnnouncementResponse.model_validate(announcement)


@router.patch("/{announcement_id}", response_model=AnnouncementResponse)
async def update_announcement(
    announcement_id: str,
    data: AnnouncementUpdateRequest,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    announcement = await _get_announcement_or_404(announcement_id, db)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(announcement, field, value)
    await db.commit()
    await db.refresh(announcement)
    return AnnouncementResponse.model_validate(announcement)


@router.delete("/{announcement_id}", response_model=MessageResponse)
async def delete_announcement(
    announcement_id: str,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    announcement = await _get_announcement_or_404(announcement_id, db)
    await db.delete(announcement)
    await db.commit()
    return MessageResponse(message="Announcement deleted")
