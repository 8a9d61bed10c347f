"""Opaque API keys: ``yg_`` followed by 64 hex characters.

Keys are shown to their owner once; the database only keeps a SHA-256 digest
and a short prefix for display.
"""

import hashlib
import secrets
from datetime import timedelta

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from yigyaps.auth.principal import Principal
from yigyaps.database import utcnow
from yigyaps.errors import NotFoundError, UnauthenticatedError
from yigyaps.models.api_key import ApiKey
from yigyaps.models.user import User

KEY_PREFIX = "yg_"
_DISPLAY_PREFIX_LEN = 10


def generate_key() -> str:
    return KEY_PREFIX + secrets.token_hex(32)


def hash_key(raw_key: str) -> str:
    return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()


def looks_like_api_key(token: str) -> bool:
    return token.startswith(KEY_PREFIX)


async def create_api_key(
    db: AsyncSession,
    user_id,
    name: str,
    scopes: list[str] | None = None,
    expires_in_days: int | None = None,
) -> tuple[ApiKey, str]:
    """Persist a new key and return ``(row, plaintext)``."""
    raw_key = generate_key()
    api_key = ApiKey(
        user_id=user_id,
        name=name,
        key_hash=hash_key(raw_key),
        key_prefix=raw_key[:_DISPLAY_PREFIX_LEN],
        scopes=scopes or [],
        expires_at=utcnow() + timedelta(days=expires_in_days) if expires_in_days else None,
    )
    db.add(api_key)
    await db.commit()
    await db.refresh(api_key)
    return api_key, raw_key


async def list_api_keys(db: AsyncSession, user_id) -> list[ApiKey]:
    result = await db.execute(select(ApiKey).where(ApiKey.user_id == user_id).order_by(ApiKey.created_at.desc()))
    return list(result.scalars().all())


async def revoke_api_key(db: AsyncSession, key_id, principal: Principal) -> ApiKey:
    api_key = await db.get(ApiKey, key_id)
    if api_key is None or not principal.can_act_for(api_key.user_id):
        raise NotFoundError("API key not found")
    if api_key.revoked_at is None:
        api_key.revoked_at = utcnow()
        await db.commit()
        await db.refresh(api_key)
    return api_key


async def authenticate_api_key(db: AsyncSession, raw_key: str) -> Principal:
    """Resolve an API key to its owner, or raise UnauthenticatedError."""
    now = utcnow()
    result = await db.execute(
        select(ApiKey, User)
        .join(User, User.id == ApiKey.user_id)
        .where(
            ApiKey.key_hash == hash_key(raw_key),
            ApiKey.revoked_at.is_(None),
            or_(ApiKey.expires_at.is_(None), ApiKey.expires_at > now),
        )
    )
    row = result.first()
    if row is None:
        raise UnauthenticatedError("Invalid, revoked or expired API key")
    api_key, user = row

    await db.execute(update(ApiKey).where(ApiKey.id == api_key.id).values(last_used_at=now))
    await db.commit()

    return Principal(
        id=user.id,
        username=user.github_username,
        display_name=user.display_name,
        tier=user.tier,
        role=user.role,
        auth_method="apikey",
    )
