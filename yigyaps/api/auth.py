"""Login exchange and the current principal.

POST /v1/auth/login   exchange a GitHub OAuth code for a registry token
GET  /v1/auth/github  authorize URL for the web portal
GET  /v1/auth/me      the authenticated principal
"""

import logging
import secrets

import httpx
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from yigyaps.auth import Principal, create_access_token, get_current_principal
from yigyaps.auth.github import GitHubProfile, authorize_url, fetch_profile
from yigyaps.config import settings
from yigyaps.database import get_db, utcnow
from yigyaps.errors import UnauthenticatedError, UpstreamError
from yigyaps.models.user import User
from yigyaps.schemas.auth import AuthorizeResponse, LoginRequest, TokenResponse, UserOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _require_github() -> None:
    if not settings.github_configured:
        raise UpstreamError("GitHub login is not configured on this registry")


async def _upsert_user(db: AsyncSession, profile: GitHubProfile) -> User:
    result = await db.execute(select(User).where(User.github_id == profile.github_id))
    user = result.scalar_one_or_none()
    if user is None:
        user = User(
            github_id=profile.github_id,
            github_username=profile.login,
            display_name=profile.name or profile.login,
        )
        db.add(user)
        logger.info("new user %s (github %s)", profile.login, profile.github_id)
    user.github_username = profile.login
    user.email = profile.email or user.email
    user.avatar_url = profile.avatar_url or user.avatar_url
    user.last_login_at = utcnow()
    await db.commit()
    await db.refresh(user)
    return user


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)) -> TokenResponse:
    _require_github()
    try:
        profile = await fetch_profile(
            body.code, settings.github_client_id, settings.github_client_secret, settings.github_callback_url
        )
    except ValueError as exc:
        raise UnauthenticatedError(str(exc))
    except httpx.HTTPError as exc:
        raise UpstreamError(f"GitHub request failed: {exc}")

    user = await _upsert_user(db, profile)
    return TokenResponse(
        access_token=create_access_token(user),
        expires_in=settings.access_token_expire_minutes * 60,
        user=UserOut.model_validate(user),
    )


@router.get("/github", response_model=AuthorizeResponse)
async def github_authorize() -> AuthorizeResponse:
    _require_github()
    state = secrets.token_urlsafe(16)
    return AuthorizeResponse(
        url=authorize_url(state, settings.github_client_id, settings.github_callback_url),
        state=state,
    )


@router.get("/me", response_model=UserOut)
async def me(principal: Principal = Depends(get_current_principal), db: AsyncSession = Depends(get_db)) -> User:
    user = await db.get(User, principal.id)
    if user is None:
        raise UnauthenticatedError("This account no longer exists. Run `yigyaps login` again.")
    return user
