"""Installation routes.

POST   /v1/installations               install (201 new, 200 when already active)
GET    /v1/installations               caller's installations
PATCH  /v1/installations/{id}          change status
DELETE /v1/installations/{id}          uninstall (revoke)
GET    /v1/installations/agent/{agent} caller's active installations for one agent
"""

import uuid

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from yigyaps.auth import Principal, get_current_principal
from yigyaps.database import get_db
from yigyaps.models.installation import SkillInstallation
from yigyaps.registry import installations
from yigyaps.schemas.common import DEFAULT_PAGE_SIZE, Page
from yigyaps.schemas.installation import InstallationOut, InstallRequest, UpdateInstallationRequest

router = APIRouter(prefix="/installations", tags=["installations"])


@router.post("", response_model=InstallationOut, status_code=status.HTTP_201_CREATED)
async def install_package(
    body: InstallRequest,
    response: Response,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> SkillInstallation:
    installation, created = await installations.install(db, principal, body)
    if not created:
        response.status_code = status.HTTP_200_OK
    return installation


@router.get("", response_model=Page[InstallationOut])
async def list_installations(
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> Page[InstallationOut]:
    rows, total, limit = await installations.list_installations(db, principal.id, limit=limit, offset=offset)
    return Page[InstallationOut](
        data=[InstallationOut.model_validate(row) for row in rows],
        total=total,
        limit=limit,
        offset=max(offset, 0),
    )


@router.get("/agent/{agent_id}", response_model=list[InstallationOut])
async def list_agent_installations(
    agent_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> list[SkillInstallation]:
    return await installations.list_agent_installations(db, principal.id, agent_id)

@router.patch("/{installation_id}", response_model=InstallationOut)
async def update_installation(
    installation_id: uuid.UUID,
    body: UpdateInstallationRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> SkillInstallation:
    return await installations.update_status(db, installation_id, principal, body.status)


@router.delete("/{installation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def uninstall(
    installation_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> None:
    await installations.uninstall(db, installation_id, principal)
