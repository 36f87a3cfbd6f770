"""
services/court/router.py
Court catalogue: featured list, paginated listing, admin CRUD.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.settings import settings
from shared.exceptions.exceptions import NotFound
from shared.middleware.auth import require_admin
from shared.models.models import Court, User
from shared.schemas.schemas import (
    CourtCreateRequest,
    CourtResponse,
    CourtUpdateRequest,
    MessageResponse,
    PaginatedResponse,
)
from shared.utils.validators import parse_object_id

router = APIRouter(prefix="/courts", tags=["Courts"])


async def _get_court_or_404(court_id: str, db: AsyncSession) -> Court:
    court = await db.scalar(select(Court).where(Court.id == parse_object_id(court_id, "Court")))
    if not court:
        raise NotFound("Court")
    return court


@router.get("/featured", response_model=list[CourtResponse])
async def list_featured_courts(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(Court).where(Court.featured.is_(True)).order_by(Court.created_at.desc())
    )
    return [CourtResponse.model_validate(c) for c in result.scalars()]


@router.get("", response_model=PaginatedResponse)
async def list_courts(
    page: int = Query(1, ge=1),
    size: int = Query(settings.COURTS_PAGE_SIZE, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
):
    query = select(Court).order_by(Court.created_at.asc())
    total = await db.scalar(select(func.count()).select_from(Court))
    result = await db.execute(query.offset((page - 1) * size).limit(size))

    return {
        "items": [CourtResponse.model_validate(c).model_dump(mode="json") for c in result.scalars()],
        "total": total,
        "page": page,
        "page_size": size,
        "total_pages": -(-total // size),  # ceiling division
    }


@router.post("", response_model=CourtResponse, status_code=status.HTTP_201_CREATED)
async def create_court(
    data: CourtCreateRequest,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    court = Court(**data.model_dump())
    db.add(court)
    await db.commit()
    await db.refresh(court)
    return CourtResponse.model_validate(court)


@router.patch("/{court_id}", response_model=CourtResponse)
async def update_court(
    court_id: str,
    data: CourtUpdateRequest,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    court = await _get_court_or_404(court_id, db)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(court, field, value)
    await db.commit()
    await db.refresh(court)
    return CourtResponse.model_validate(court)


@router.delete("/{court_id}", response_model=MessageResponse)
async def delete_court(
    court_id: str,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    court = await _get_court_or_404(court_id, db)
    await db.delete(court)
    await db.commit()
    return MessageResponse(message="Court deleted")
