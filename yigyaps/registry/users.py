import logging
import uuid

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from yigyaps.auth.principal import Principal
from yigyaps.database import retry_transient
from yigyaps.errors import NotFoundError, UnauthenticatedError
from yigyaps.models.user import User
from yigyaps.schemas.auth import ProfileUpdate
from yigyaps.schemas.common import clamp_limit

logger = logging.getLogger(__name__)


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User '{user_id}' not found")
    return user


async def update_profile(db: AsyncSession, principal: Principal, patch: ProfileUpdate) -> User:
    changes = patch.model_dump(exclude_unset=True)
    if changes.get("display_name", "") is None:
        changes.pop("display_name")

    async def _update() -> User:
        user = await db.get(User, principal.id)
        if user is None:
            raise UnauthenticatedError("This account no longer exists. Run `yigyaps login` again.")
        for name, value in changes.items():
            setattr(user, name, value)
        await db.commit()
        await db.refresh(user)
        return user

    return await retry_transient(db, _update)


async def list_users(
    db: AsyncSession, query: str | None = None, limit: int | None = None, offset: int = 0
) -> tuple[list[User], int, int]:
    """Users newest first, optionally filtered by a username or display-name substring."""
    limit = clamp_limit(limit)
    offset = max(offset, 0)
    where = []
    if query and query.strip():
        q = query.strip()
        where.append(
            or_(User.github_username.icontains(q, autoescape=True), User.display_name.icontains(q, autoescape=True))
        )
    total = (await db.execute(select(func.count()).select_from(User).where(*where))).scalar_one()
    result = await db.execute(
        select(User).where(*where).order_by(User.created_at.desc(), User.id).limit(limit).offset(offset)
    )
    return list(result.scalars().all()), total, limit


async def _set_field(db: AsyncSession, user_id: uuid.UUID, field: str, value: str, admin: Principal) -> User:
    async def _update() -> tuple[User, str]:
        user = await get_user(db, user_id)
        previous = getattr(user, field)
        setattr(user, field, value)
        await db.commit()
        await db.refresh(user)
        return user, previous

    user, previous = await retry_transient(db, _update)
    if previous != value:
        logger.info("admin %s changed %s of %s: %s -> %s", admin.username, field, user.github_username, previous, value)
    return user


async def set_role(db: AsyncSession, user_id: uuid.UUID, role: str, admin: Principal) -> User:
    return await _set_field(db, user_id, "role", role, admin)


async def set_tier(db: AsyncSession, user_id: uuid.UUID, tier: str, admin: Principal) -> User:
    return await _set_field(db, user_id, "tier", tier, admin)
