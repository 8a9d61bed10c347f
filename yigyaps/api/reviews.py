import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from yigyaps.auth import Principal, get_current_principal
from yigyaps.database import get_db
from yigyaps.models.review import SkillReview
from yigyaps.registry import reviews
from yigyaps.schemas.review import ReviewOut, ReviewUpdate

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.patch("/{review_id}", response_model=ReviewOut)
async def update_review(
    review_id: uuid.UUID,
    body: ReviewUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> SkillReview:
    return await reviews.update_review(db, review_id, principal, body)


@router.delete("/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_review(
    review_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> None:
    await reviews.delete_review(db, review_id, principal)
