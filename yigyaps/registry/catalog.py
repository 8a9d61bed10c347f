"""Catalog store: publish, fetch, search, update and soft-delete skill packages.

``install_count``, ``rating_mean`` and ``rating_count`` are only ever written
by :func:`recompute_install_count` and :func:`recompute_rating`, which set them
from aggregates inside the caller's transaction.
"""

import logging
import uuid
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal

import pydantic
from sqlalchemy import and_, case, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from yigyaps.auth.principal import Principal
from yigyaps.database import retry_transient, utcnow
from yigyaps.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from yigyaps.models.installation import SkillInstallation
from yigyaps.models.package import TAG_SEPARATOR, SkillPackage
from yigyaps.models.review import SkillReview
from yigyaps.models.user import User
from yigyaps.schemas.admin import AdminStats, CountStats, InstallStats
from yigyaps.schemas.common import clamp_limit
from yigyaps.schemas.package import PackageFields, PublishPackageRequest, UpdatePackageRequest
from yigyaps.types import InstallationStatus, PackageStatus, SearchSort

logger = logging.getLogger(__name__)

_RATING_QUANTUM = Decimal("0.0001")


def _not_found(ref: object) -> NotFoundError:
    return NotFoundError(f"Package '{ref}' not found")


async def create_package(db: AsyncSession, author: Principal, body: PublishPackageRequest) -> SkillPackage:
    """Publish a new package version owned by *author*."""

    async def _create() -> SkillPackage:
        existing = await db.execute(
            select(SkillPackage.author_id, SkillPackage.version).where(SkillPackage.package_id == body.package_id)
        )
        rows = existing.all()
        if any(row.version == body.version for row in rows):
            raise ConflictError(f"Package '{body.package_id}' version {body.version} already exists")
        owners = {row.author_id for row in rows}
        if owners and not owners <= {author.id} and not author.is_admin:
            raise ForbiddenError(f"Package id '{body.package_id}' belongs to another author")

        package = SkillPackage(id=uuid.uuid4(), author_id=author.id, **body.model_dump())
        db.add(package)
        if not rows:
            await db.execute(
                update(User).where(User.id == author.id).values(total_packages=User.total_packages + 1)
            )
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ConflictError(f"Package '{body.package_id}' version {body.version} already exists")
        await db.refresh(package)
        return package

    package = await retry_transient(db, _create)
    logger.info("published %s@%s (%s) by %s", package.package_id, package.version, package.id, author.username)
    return package


async def get_package(db: AsyncSession, package_id: uuid.UUID) -> SkillPackage:
    """Return the live package with surrogate id *package_id*."""
    package = await db.get(SkillPackage, package_id)
    if package is None or package.deleted_at is not None:
        raise _not_found(package_id)
    return package


async def get_by_package_id(db: AsyncSession, package_id: str) -> SkillPackage:
    """Return the newest live version of the human-readable *package_id*."""
    result = await db.execute(
        select(SkillPackage)
        .where(SkillPackage.package_id == package_id, SkillPackage.deleted_at.is_(None))
        .order_by(SkillPackage.created_at.desc(), SkillPackage.id.desc())
        .limit(1)
    )
    package = result.scalar_one_or_none()
    if package is None:
        raise _not_found(package_id)
    return package


def _latest_versions():
    latest = (
        select(SkillPackage.package_id, func.max(SkillPackage.created_at).label("latest_at"))
        .where(SkillPackage.deleted_at.is_(None))
        .group_by(SkillPackage.package_id)
        .subquery()
    )
    return select(SkillPackage).join(
        latest,
        and_(SkillPackage.package_id == latest.c.package_id, SkillPackage.created_at == latest.c.latest_at),
    ).where(SkillPackage.deleted_at.is_(None))


def _has_tag(tag: str):
    return SkillPackage.tags_text.contains(TAG_SEPARATOR + tag.lower() + TAG_SEPARATOR, autoescape=True)


def _relevance(q: str):
    """Additive score: exact package id 3, display-name (word) prefix 2, exact tag 1."""
    exact_id = func.lower(SkillPackage.package_id) == q.lower()
    name_prefix = or_(
        SkillPackage.display_name.istartswith(q, autoescape=True),
        SkillPackage.display_name.icontains(" " + q, autoescape=True),
        SkillPackage.display_name.icontains("-" + q, autoescape=True),
    )
    return (
        case((exact_id, 3), else_=0)
        + case((name_prefix, 2), else_=0)
        + case((_has_tag(q), 1), else_=0)
    )


def _matches(q: str):
    clauses = [
        SkillPackage.package_id.icontains(q, autoescape=True),
        SkillPackage.display_name.icontains(q, autoescape=True),
        SkillPackage.description.icontains(q, autoescape=True),
    ]
    if TAG_SEPARATOR not in q:
        clauses.append(SkillPackage.tags_text.contains(q.lower(), autoescape=True))
    return or_(*clauses)


_INSTALLS_ORDER = (SkillPackage.install_count.desc(), SkillPackage.created_at.desc(), SkillPackage.id.desc())


async def search_packages(
    db: AsyncSession,
    *,
    q: str | None = None,
    category: str | None = None,
    maturity: str | None = None,
    license: str | None = None,
    author: str | None = None,
    tags: list[str] | None = None,
    min_rating: Decimal | None = None,
    max_price_usd: Decimal | None = None,
    sort: SearchSort = SearchSort.RELEVANCE,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[list[SkillPackage], int, int]:
    """Search the newest live version of every active package.

    *tags* must all be present on a package. A package without a price counts
    as 0 for *max_price_usd*; an unrated one never passes *min_rating*.
    Returns ``(rows, total, limit)`` where *limit* is the clamped page size.
    """
    limit = clamp_limit(limit)
    offset = max(offset, 0)
    stmt = _latest_versions().where(SkillPackage.status == PackageStatus.ACTIVE)

    q = (q or "").strip() or None
    if q:
        stmt = stmt.where(_matches(q))
    if category:
        stmt = stmt.where(SkillPackage.category == category)
    if maturity:
        stmt = stmt.where(SkillPackage.maturity == maturity)
    if license:
        stmt = stmt.where(SkillPackage.license == license)
    for tag in tags or ():
        tag = tag.strip()
        if tag:
            stmt = stmt.where(_has_tag(tag))
    if min_rating is not None:
        stmt = stmt.where(SkillPackage.rating_mean >= min_rating)
    if max_price_usd is not None:
        stmt = stmt.where(func.coalesce(SkillPackage.price_usd, 0) <= max_price_usd)
    if author:
        try:
            stmt = stmt.where(SkillPackage.author_id == uuid.UUID(author))
        except ValueError:
            stmt = stmt.join(User, User.id == SkillPackage.author_id).where(
                func.lower(User.github_username) == author.lower()
            )

    total = (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()

    if sort == SearchSort.RELEVANCE and q:
        order = (_relevance(q).desc(), *_INSTALLS_ORDER)
    elif sort == SearchSort.RATING:
        order = (
            func.coalesce(SkillPackage.rating_mean, -1).desc(),
            SkillPackage.rating_count.desc(),
            SkillPackage.created_at.desc(),
            SkillPackage.id.desc(),
        )
    elif sort == SearchSort.RECENCY:
        order = (SkillPackage.created_at.desc(), SkillPackage.id.desc())
    elif sort == SearchSort.NAME:
        order = (func.lower(SkillPackage.display_name).asc(), SkillPackage.package_id.asc(), SkillPackage.id.asc())
    else:
        order = _INSTALLS_ORDER

    result = await db.execute(stmt.order_by(*order).limit(limit).offset(offset))
    return list(result.scalars().all()), total, limit


async def list_author_packages(db: AsyncSession, author_id: uuid.UUID) -> list[SkillPackage]:
    result = await db.execute(
        select(SkillPackage)
        .where(SkillPackage.author_id == author_id, SkillPackage.deleted_at.is_(None))
        .order_by(SkillPackage.package_id, SkillPackage.created_at.desc())
    )
    return list(result.scalars().all())


def _check_can_edit(package: SkillPackage, actor: Principal) -> None:
    if not actor.can_act_for(package.author_id):
        raise ForbiddenError("Only the package author can change this package")


async def update_package(
    db: AsyncSession, package_id: uuid.UUID, patch: UpdatePackageRequest, actor: Principal
) -> SkillPackage:
    """Apply *patch* to a package; the merged result must still be a valid package."""
    changes = patch.model_dump(exclude_unset=True)

    async def _update() -> SkillPackage:
        package = await get_package(db, package_id)
        _check_can_edit(package, actor)

        current = {name: getattr(package, name) for name in PackageFields.model_fields}
        try:
            merged = PackageFields.model_validate({**current, **changes})
        except pydantic.ValidationError as exc:
            errors = exc.errors(include_url=False, include_context=False)
            raise ValidationError(errors[0]["msg"], details=errors)

        for name, value in merged.model_dump().items():
            setattr(package, name, value)
        await db.commit()
        await db.refresh(package)
        return package

    package = await retry_transient(db, _update)
    logger.info("updated %s@%s: %s", package.package_id, package.version, sorted(changes))
    return package


async def soft_delete_package(db: AsyncSession, package_id: uuid.UUID, actor: Principal) -> None:
    async def _delete() -> SkillPackage:
        package = await get_package(db, package_id)
        _check_can_edit(package, actor)
        package.deleted_at = utcnow()
        await db.commit()
        return package

    package = await retry_transient(db, _delete)
    logger.info("deleted %s@%s (%s)", package.package_id, package.version, package.id)


async def recompute_install_count(db: AsyncSession, package_id: uuid.UUID) -> None:
    """Set ``install_count`` to the number of active installations. Does not commit."""
    active = (
        select(func.count())
        .select_from(SkillInstallation)
        .where(SkillInstallation.package_id == package_id, SkillInstallation.status == InstallationStatus.ACTIVE)
        .scalar_subquery()
    )
    await db.execute(update(SkillPackage).where(SkillPackage.id == package_id).values(install_count=active))


async def recompute_rating(db: AsyncSession, package_id: uuid.UUID) -> None:
    """Set ``rating_mean`` / ``rating_count`` from the reviews. Does not commit."""
    row = (
        await db.execute(
            select(func.avg(SkillReview.rating), func.count(SkillReview.id)).where(
                SkillReview.package_id == package_id
            )
        )
    ).one()
    mean, count = row
    rating_mean = None
    if count:
        rating_mean = Decimal(str(mean)).quantize(_RATING_QUANTUM, rounding=ROUND_HALF_UP)
    await db.execute(
        update(SkillPackage).where(SkillPackage.id == package_id).values(rating_mean=rating_mean, rating_count=count)
    )


# ── Moderation ───────────────────────────────────────────────────────────────


async def list_all_packages(
    db: AsyncSession, status: PackageStatus | None = None, limit: int | None = None, offset: int = 0
) -> tuple[list[SkillPackage], int, int]:
    """Every live package version, whatever its moderation status, newest first."""
    limit = clamp_limit(limit)
    offset = max(offset, 0)
    where = [SkillPackage.deleted_at.is_(None)]
    if status is not None:
        where.append(SkillPackage.status == status)
    total = (await db.execute(select(func.count()).select_from(SkillPackage).where(*where))).scalar_one()
    result = await db.execute(
        select(SkillPackage)
        .where(*where)
        .order_by(SkillPackage.created_at.desc(), SkillPackage.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all()), total, limit


async def set_package_status(
    db: AsyncSession, package_id: uuid.UUID, status: PackageStatus, admin: Principal, reason: str | None = None
) -> SkillPackage:
    async def _set() -> SkillPackage:
        package = await get_package(db, package_id)
        package.status = status
        await db.commit()
        await db.refresh(package)
        return package

    package = await retry_transient(db, _set)
    logger.info(
        "admin %s set %s@%s to %s (%s)", admin.username, package.package_id, package.version, status, reason or "-"
    )
    return package


async def platform_stats(db: AsyncSession) -> AdminStats:
    since = utcnow() - timedelta(days=1)
    live = SkillPackage.deleted_at.is_(None)

    async def count(stmt) -> int:
        return int((await db.execute(stmt)).scalar_one())

    return AdminStats(
        users=CountStats(
            total=await count(select(func.count()).select_from(User)),
            today=await count(select(func.count()).select_from(User).where(User.created_at >= since)),
        ),
        packages=CountStats(
            total=await count(select(func.count()).select_from(SkillPackage).where(live)),
            today=await count(
                select(func.count()).select_from(SkillPackage).where(live, SkillPackage.created_at >= since)
            ),
        ),
        installs=InstallStats(
            total=await count(select(func.count()).select_from(SkillInstallation)),
            active=await count(
                select(func.count())
                .select_from(SkillInstallation)
                .where(SkillInstallation.status == InstallationStatus.ACTIVE)
            ),
        ),
    )
