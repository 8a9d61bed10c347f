"""Package catalog routes.

POST   /v1/packages                     publish a version
GET    /v1/packages                     search (q, filters, repeated `tag`, minRating, maxPriceUsd)
GET    /v1/packages/mine                caller's packages
GET    /v1/packages/by-name/{packageId} newest version by package id
GET    /v1/packages/{id}                one version by surrogate id
PATCH  /v1/packages/{id}                update metadata
DELETE /v1/packages/{id}                soft delete
POST   /v1/packages/{id}/reviews        review a package
GET    /v1/packages/{id}/reviews        list reviews
"""

import uuid
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from yigyaps.auth import Principal, get_current_principal
from yigyaps.database import get_db
from yigyaps.models.package import SkillPackage
from yigyaps.models.review import SkillReview
from yigyaps.registry import catalog, reviews
from yigyaps.schemas.common import DEFAULT_PAGE_SIZE, Page
from yigyaps.schemas.package import PublishPackageRequest, SkillPackageOut, UpdatePackageRequest
from yigyaps.schemas.review import ReviewCreate, ReviewOut
from yigyaps.types import Category, License, Maturity, ReviewSort, SearchSort

router = APIRouter(prefix="/packages", tags=["packages"])


@router.post("", response_model=SkillPackageOut, status_code=status.HTTP_201_CREATED)
async def publish_package(
    body: PublishPackageRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> SkillPackage:
    return await catalog.create_package(db, principal, body)


@router.get("", response_model=Page[SkillPackageOut])
async def search_packages(
    q: str | None = Query(None, max_length=200),
    category: Category | None = None,
    maturity: Maturity | None = None,
    license: License | None = None,
    author: str | None = None,
    tags: list[str] | None = Query(None, alias="tag"),
    min_rating: Decimal | None = Query(None, alias="minRating", ge=0, le=5),
    max_price_usd: Decimal | None = Query(None, alias="maxPriceUsd", ge=0),
    sort: SearchSort = SearchSort.RELEVANCE,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
    db: AsyncSession = Depends(get_db),
) -> Page[SkillPackageOut]:
    rows, total, limit = await catalog.search_packages(
        db,
        q=q,
        category=category,
        maturity=maturity,
        license=license,
        author=author,
        tags=tags,
        min_rating=min_rating,
        max_price_usd=max_price_usd,
        sort=sort,
        limit=limit,
        offset=offset,
    )
    return Page[SkillPackageOut](
        data=[SkillPackageOut.model_validate(row) for row in rows],
        total=total,
        limit=limit,
        offset=max(offset, 0),
    )


@router.get("/mine", response_model=list[SkillPackageOut])
async def my_packages(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> list[SkillPackage]:
    return await catalog.list_author_packages(db, principal.id)


@router.get("/by-name/{package_id}", response_model=SkillPackageOut)
async def get_package_by_name(package_id: str, db: AsyncSession = Depends(get_db)) -> SkillPackage:
    return await catalog.get_by_package_id(db, package_id)


@router.get("/{id}", response_model=SkillPackageOut)
async def get_package(id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> SkillPackage:
    return await catalog.get_package(db, id)


@router.patch("/{id}", response_model=SkillPackageOut)
async def update_package(
    id: uuid.UUID,
    body: UpdatePackageRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> SkillPackage:
    return await catalog.update_package(db, id, body, principal)


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_package(
    id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> None:
    await catalog.soft_delete_package(db, id, principal)


@router.post("/{id}/reviews", response_model=ReviewOut, status_code=status.HTTP_201_CREATED)
async def create_review(
    id: uuid.UUID,
    body: ReviewCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> SkillReview:
    return await reviews.create_review(db, id, principal, body)


@router.get("/{id}/reviews", response_model=Page[ReviewOut])
async def list_reviews(
    id: uuid.UUID,
    sort: ReviewSort = ReviewSort.NEWEST,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
    db: AsyncSession = Depends(get_db),
) -> Page[ReviewOut]:
    rows, total, limit = await reviews.list_reviews(db, id, limit=limit, offset=offset, sort=sort)
    return Page[ReviewOut](
        data=[ReviewOut.model_validate(row) for row in rows],
        total=total,
        limit=limit,
        offset=max(offset, 0),
    )
