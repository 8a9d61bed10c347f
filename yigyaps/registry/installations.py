"""Installation ledger.

Installing is idempotent per (package, agent): while an active row exists the
same row is returned. A new row, the package's install counter and the
author's royalty entry are written in one transaction.
"""

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from yigyaps.auth.dependencies import require_tier
from yigyaps.auth.principal import Principal
from yigyaps.database import retry_transient
from yigyaps.errors import ConflictError, ForbiddenError, NotFoundError
from yigyaps.models.installation import SkillInstallation
from yigyaps.registry import catalog, royalties
from yigyaps.schemas.common import clamp_limit
from yigyaps.schemas.installation import InstallRequest
from yigyaps.types import PAID_LICENSES, STATUS_TRANSITIONS, InstallationStatus, PackageStatus, RoyaltySource

logger = logging.getLogger(__name__)


async def _active_installation(db: AsyncSession, package_id: uuid.UUID, agent_id: str) -> SkillInstallation | None:
    result = await db.execute(
        select(SkillInstallation).where(
            SkillInstallation.package_id == package_id,
            SkillInstallation.agent_id == agent_id,
            SkillInstallation.status == InstallationStatus.ACTIVE,
        )
    )
    return result.scalar_one_or_none()


async def install(db: AsyncSession, installer: Principal, body: InstallRequest) -> tuple[SkillInstallation, bool]:
    """Install a package for an agent. Returns ``(installation, created)``."""
    package = await catalog.get_package(db, body.package_id)
    if package.status != PackageStatus.ACTIVE:
        raise ForbiddenError(
            f"Package '{package.package_id}' is {package.status} and cannot be installed",
            details={"status": package.status},
        )
    require_tier(installer, package.required_tier)

    # Plain values: a rollback below expires the ORM instance.
    package_pk = package.id
    author_id = package.author_id
    royalty = package.price_usd if package.license in PAID_LICENSES else royalties.ZERO

    existing = await _active_installation(db, package_pk, body.agent_id)
    if existing is not None:
        return existing, False

    async def _insert() -> SkillInstallation:
        installation = SkillInstallation(
            id=uuid.uuid4(),
            package_id=package_pk,
            agent_id=body.agent_id,
            user_id=installer.id,
            installer_tier=installer.tier,
            status=InstallationStatus.ACTIVE,
            configuration=body.configuration,
        )
        db.add(installation)
        await db.flush()
        await catalog.recompute_install_count(db, package_pk)
        await royalties.append_entry(
            db,
            package_id=package_pk,
            beneficiary_id=author_id,
            source=RoyaltySource.INSTALL,
            amount_usd=royalty,
            installation_id=installation.id,
        )
        await db.commit()
        await db.refresh(installation)
        return installation

    try:
        installation = await retry_transient(db, _insert)
    except IntegrityError:
        # Lost a race with a concurrent install of the same (package, agent).
        await db.rollback()
        existing = await _active_installation(db, package_pk, body.agent_id)
        if existing is None:
            raise
        return existing, False

    logger.info("installed %s on agent %s for %s", package_pk, body.agent_id, installer.username)
    return installation, True


async def list_installations(
    db: AsyncSession, user_id: uuid.UUID, limit: int | None = None, offset: int = 0
) -> tuple[list[SkillInstallation], int, int]:
    limit = clamp_limit(limit)
    offset = max(offset, 0)
    where = SkillInstallation.user_id == user_id
    total = (await db.execute(select(func.count()).select_from(SkillInstallation).where(where))).scalar_one()
    result = await db.execute(
        select(SkillInstallation)
        .where(where)
        .order_by(SkillInstallation.installed_at.desc(), SkillInstallation.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all()), total, limit


async def list_agent_installations(db: AsyncSession, user_id: uuid.UUID, agent_id: str) -> list[SkillInstallation]:
    """Active installations the caller made on one agent."""
    result = await db.execute(
        select(SkillInstallation)
        .where(
            SkillInstallation.user_id == user_id,
            SkillInstallation.agent_id == agent_id,
            SkillInstallation.status == InstallationStatus.ACTIVE,
        )
        .order_by(SkillInstallation.installed_at.desc(), SkillInstallation.id.desc())
    )
    return list(result.scalars().all())


async def update_status(
    db: AsyncSession, installation_id: uuid.UUID, actor: Principal, status: InstallationStatus
) -> SkillInstallation:
    async def _update() -> tuple[SkillInstallation, str]:
        installation = await db.get(SkillInstallation, installation_id)
        if installation is None:
            raise NotFoundError(f"Installation '{installation_id}' not found")
        if not actor.can_act_for(installation.user_id):
            raise ForbiddenError("Only the installer can change this installation")

        current = installation.status
        if status == current:
            return installation, current
        if status not in STATUS_TRANSITIONS[current]:
            raise ConflictError(
                f"Cannot move an installation from {current} to {status}",
                details={"from": current, "to": str(status)},
            )

        installation.status = status
        await db.flush()
        if current == InstallationStatus.ACTIVE:
            await catalog.recompute_install_count(db, installation.package_id)
        await db.commit()
        await db.refresh(installation)
        return installation, current

    installation, previous = await retry_transient(db, _update)
    if previous != status:
        logger.info("installation %s: %s -> %s", installation.id, previous, status)
    return installation


async def uninstall(db: AsyncSession, installation_id: uuid.UUID, actor: Principal) -> SkillInstallation:
    """Revoke an installation; revoking an already revoked one is a no-op."""
    return await update_status(db, installation_id, actor, InstallationStatus.REVOKED)
