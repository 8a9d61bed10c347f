import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from yigyaps.auth.principal import Principal
from yigyaps.database import retry_transient
from yigyaps.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from yigyaps.models.installation import SkillInstallation
from yigyaps.models.review import SkillReview
from yigyaps.registry import catalog
from yigyaps.schemas.common import clamp_limit
from yigyaps.schemas.review import ReviewCreate, ReviewUpdate
from yigyaps.types import ReviewSort

logger = logging.getLogger(__name__)

_ORDERS = {
    ReviewSort.NEWEST: (SkillReview.created_at.desc(), SkillReview.id.desc()),
    ReviewSort.HIGHEST: (SkillReview.rating.desc(), SkillReview.created_at.desc(), SkillReview.id.desc()),
    ReviewSort.LOWEST: (SkillReview.rating.asc(), SkillReview.created_at.desc(), SkillReview.id.desc()),
}


def _duplicate(package_id: uuid.UUID) -> ConflictError:
    return ConflictError(f"You have already reviewed package '{package_id}'")


async def create_review(db: AsyncSession, package_id: uuid.UUID, author: Principal, body: ReviewCreate) -> SkillReview:
    async def _create() -> SkillReview:
        package = await catalog.get_package(db, package_id)
        package_pk = package.id

        existing = await db.execute(
            select(SkillReview.id).where(SkillReview.package_id == package_pk, SkillReview.user_id == author.id)
        )
        if existing.first() is not None:
            raise _duplicate(package_pk)

        installed = await db.execute(
            select(SkillInstallation.id)
            .where(SkillInstallation.package_id == package_pk, SkillInstallation.user_id == author.id)
            .limit(1)
        )
        review = SkillReview(
            id=uuid.uuid4(),
            package_id=package_pk,
            user_id=author.id,
            user_name=author.display_name or author.username,
            rating=body.rating,
            title=body.title,
            comment=body.comment,
            verified=installed.first() is not None,
        )
        db.add(review)
        try:
            await db.flush()
            await catalog.recompute_rating(db, package_pk)
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise _duplicate(package_pk)
        await db.refresh(review)
        return review

    review = await retry_transient(db, _create)
    logger.info("review %s on %s by %s (%d stars)", review.id, review.package_id, author.username, review.rating)
    return review


async def list_reviews(
    db: AsyncSession,
    package_id: uuid.UUID,
    limit: int | None = None,
    offset: int = 0,
    sort: ReviewSort = ReviewSort.NEWEST,
) -> tuple[list[SkillReview], int, int]:
    await catalog.get_package(db, package_id)
    limit = clamp_limit(limit)
    offset = max(offset, 0)
    where = SkillReview.package_id == package_id
    total = (await db.execute(select(func.count()).select_from(SkillReview).where(where))).scalar_one()
    result = await db.execute(select(SkillReview).where(where).order_by(*_ORDERS[sort]).limit(limit).offset(offset))
    return list(result.scalars().all()), total, limit


async def _get_own_review(db: AsyncSession, review_id: uuid.UUID, actor: Principal) -> SkillReview:
    review = await db.get(SkillReview, review_id)
    if review is None:
        raise NotFoundError(f"Review '{review_id}' not found")
    if not actor.can_act_for(review.user_id):
        raise ForbiddenError("Only the review author can change this review")
    return review


async def update_review(db: AsyncSession, review_id: uuid.UUID, actor: Principal, patch: ReviewUpdate) -> SkillReview:
    changes = patch.model_dump(exclude_unset=True)
    if "rating" in changes and changes["rating"] is None:
        raise ValidationError("rating: cannot be removed from a review")

    async def _update() -> SkillReview:
        review = await _get_own_review(db, review_id, actor)
        for name, value in changes.items():
            setattr(review, name, value)
        await db.flush()
        await catalog.recompute_rating(db, review.package_id)
        await db.commit()
        await db.refresh(review)
        return review

    return await retry_transient(db, _update)


async def delete_review(db: AsyncSession, review_id: uuid.UUID, actor: Principal) -> None:
    async def _delete() -> uuid.UUID:
        review = await _get_own_review(db, review_id, actor)
        package_pk = review.package_id
        await db.delete(review)
        await db.flush()
        await catalog.recompute_rating(db, package_pk)
        await db.commit()
        return package_pk

    package_pk = await retry_transient(db, _delete)
    logger.info("deleted review %s on %s", review_id, package_pk)
