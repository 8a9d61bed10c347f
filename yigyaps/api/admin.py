"""Admin routes: server logs, platform stats, user and package moderation.

GET   /v1/admin/logs                        recent server log entries
GET   /v1/admin/stats                       user, package and install counts
GET   /v1/admin/users                       all users, filtered by name
PATCH /v1/admin/users/{id}/role             change a user's role
PATCH /v1/admin/users/{id}/tier             change a user's tier
GET   /v1/admin/packages                    every package, any moderation status
PATCH /v1/admin/packages/{id}/status        archive, ban or restore a package

Role and tier changes show up in JWT claims at the user's next login; API
keys read the user row and see them at once.
"""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from yigyaps.auth import Principal
from yigyaps.auth.dependencies import get_admin_principal
from yigyaps.database import get_db
from yigyaps.log_buffer import LogEntry, log_handler
from yigyaps.models.package import SkillPackage
from yigyaps.models.user import User
from yigyaps.registry import catalog, users
from yigyaps.schemas.admin import AdminStats, PackageStatusUpdate, RoleUpdate, TierUpdate
from yigyaps.schemas.auth import UserOut
from yigyaps.schemas.common import DEFAULT_PAGE_SIZE, Page
from yigyaps.schemas.package import SkillPackageOut
from yigyaps.types import PackageStatus

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/logs", response_model=list[LogEntry])
async def get_logs(
    limit: int = Query(200, ge=1, le=2000),
    level: str | None = Query(None),
    logger_name: str | None = Query(None, alias="logger"),
    request_id: str | None = Query(None, alias="requestId"),
    _admin: Principal = Depends(get_admin_principal),
) -> list[LogEntry]:
    """Return the most recent log entries (newest last)."""
    return log_handler.get_entries(limit=limit, level=level, logger_name=logger_name, request_id=request_id)


@router.get("/stats", response_model=AdminStats)
async def get_stats(
    _admin: Principal = Depends(get_admin_principal),
    db: AsyncSession = Depends(get_db),
) -> AdminStats:
    return await catalog.platform_stats(db)


@router.get("/users", response_model=Page[UserOut])
async def list_users(
    query: str | None = Query(None, max_length=100),
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
    _admin: Principal = Depends(get_admin_principal),
    db: AsyncSession = Depends(get_db),
) -> Page[UserOut]:
    rows, total, limit = await users.list_users(db, query, limit=limit, offset=offset)
    return Page[UserOut](
        data=[UserOut.model_validate(row) for row in rows],
        total=total,
        limit=limit,
        offset=max(offset, 0),
    )


@router.patch("/users/{user_id}/role", response_model=UserOut)
async def set_user_role(
    user_id: uuid.UUID,
    body: RoleUpdate,
    admin: Principal = Depends(get_admin_principal),
    db: AsyncSession = Depends(get_db),
) -> User:
    return await users.set_role(db, user_id, body.role, admin)


@router.patch("/users/{user_id}/tier", response_model=UserOut)
async def set_user_tier(
    user_id: uuid.UUID,
    body: TierUpdate,
    admin: Principal = Depends(get_admin_principal),
    db: AsyncSession = Depends(get_db),
) -> User:
    return await users.set_tier(db, user_id, body.tier, admin)


@router.get("/packages", response_model=Page[SkillPackageOut])
async def list_packages(
    status: PackageStatus | None = None,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
    _admin: Principal = Depends(get_admin_principal),
    db: AsyncSession = Depends(get_db),
) -> Page[SkillPackageOut]:
    rows, total, limit = await catalog.list_all_packages(db, status, limit=limit, offset=offset)
    return Page[SkillPackageOut](
        data=[SkillPackageOut.model_validate(row) for row in rows],
        total=total,
        limit=limit,
        offset=max(offset, 0),
    )


@router.patch("/packages/{package_id}/status", response_model=SkillPackageOut)
async def set_package_status(
    package_id: uuid.UUID,
    body: PackageStatusUpdate,
    admin: Principal = Depends(get_admin_principal),
    db: AsyncSession = Depends(get_db),
) -> SkillPackage:
    return await catalog.set_package_status(db, package_id, body.status, admin, body.reason)
