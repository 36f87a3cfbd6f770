"""
services/review/router.py
Club reviews shown on the landing page.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from shared.middleware.auth import AuthorizedContext, get_token_data
from shared.models.models import Review
from shared.schemas.schemas import ReviewCreateRequest, ReviewResponse

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    data: ReviewCreateRequest,
    ctx: AuthorizedContext = Depends(get_token_data),
    db: AsyncSession = Depends(get_db),
):
    """Any signed-in visitor may leave a 1-5 star review."""
    review = Review(**data.model_dump())
    db.add(review)
    await db.commit()
    await db.refresh(review)
    return ReviewResponse.model_validate(review)


@router.get("", response_model=list[ReviewResponse])
async def list_reviews(
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """Newest first."""
    result = await db.execute(select(Review).order_by(Review.date.desc()).limit(limit))
    return [ReviewResponse.model_validate(r) for r in result.scalars()]
