from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from yigyaps.auth.api_keys import authenticate_api_key, looks_like_api_key
from yigyaps.auth.jwt import decode_access_token
from yigyaps.auth.principal import Principal
from yigyaps.database import get_db
from yigyaps.errors import ForbiddenError, UnauthenticatedError
from yigyaps.types import tier_for_rank


def extract_credential(authorization: str | None, x_api_key: str | None) -> str | None:
    """Pick the credential from the request headers; a bearer token wins over X-API-Key."""
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise UnauthenticatedError("Invalid Authorization header format. Expected: Bearer <token>")
        return token.strip()
    if x_api_key and x_api_key.strip():
        return x_api_key.strip()
    return None


async def authenticate(db: AsyncSession, credential: str) -> Principal:
    if looks_like_api_key(credential):
        return await authenticate_api_key(db, credential)
    return decode_access_token(credential)


async def get_current_principal(
    authorization: str | None = Header(default=None),
    x_api_key: str | None = Header(default=None),
    db: AsyncSession = Depends(get_db),
) -> Principal:
    credential = extract_credential(authorization, x_api_key)
    if credential is None:
        raise UnauthenticatedError("Missing credentials. Run `yigyaps login` or send a bearer token.")
    return await authenticate(db, credential)


async def get_optional_principal(
    authorization: str | None = Header(default=None),
    x_api_key: str | None = Header(default=None),
    db: AsyncSession = Depends(get_db),
) -> Principal | None:
    credential = extract_credential(authorization, x_api_key)
    if credential is None:
        return None
    return await authenticate(db, credential)


def require_role(principal: Principal, role: str) -> None:
    if principal.role != role:
        raise ForbiddenError(f"Requires the '{role}' role")


def require_tier(principal: Principal, min_rank: int) -> None:
    if principal.tier_rank < min_rank:
        raise ForbiddenError(
            f"Requires the '{tier_for_rank(min_rank)}' tier",
            details={
                "requiredTier": min_rank,
                "requiredTierName": tier_for_rank(min_rank),
                "currentTier": principal.tier,
            },
        )


async def get_admin_principal(principal: Principal = Depends(get_current_principal)) -> Principal:
    require_role(principal, "admin")
    return principal
