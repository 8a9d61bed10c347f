"""User profiles.

PATCH /v1/users/me    edit the caller's display name, bio and website
GET   /v1/users/{id}  public profile
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from yigyaps.auth import Principal, get_current_principal
from yigyaps.database import get_db
from yigyaps.models.user import User
from yigyaps.registry import users
from yigyaps.schemas.auth import ProfileUpdate, PublicUserOut, UserOut

router = APIRouter(prefix="/users", tags=["users"])


@router.patch("/me", response_model=UserOut)
async def update_me(
    body: ProfileUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> User:
    return await users.update_profile(db, principal, body)


@router.get("/{user_id}", response_model=PublicUserOut)
async def get_user(user_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> User:
    return await users.get_user(db, user_id)
