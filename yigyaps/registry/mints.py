import logging
import secrets
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from yigyaps.auth.principal import Principal
from yigyaps.database import retry_transient
from yigyaps.errors import ConflictError, ForbiddenError
from yigyaps.models.mint import SkillMint
from yigyaps.registry import catalog, royalties
from yigyaps.schemas.ledger import MintRequest
from yigyaps.types import DEFAULT_MAX_EDITIONS, PAID_LICENSES, RoyaltySource

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "ygm_"


def generate_token_id() -> str:
    return TOKEN_PREFIX + secrets.token_hex(16)


async def mint(db: AsyncSession, owner: Principal, body: MintRequest) -> SkillMint:
    """Mint the owner's claim record on a package they authored.

    The edition cap defaults from the rarity when the request leaves it out.
    Both edition fields are stored as given; nothing enforces the cap yet.
    """
    max_editions = body.max_editions if body.max_editions is not None else DEFAULT_MAX_EDITIONS[body.rarity]

    async def _mint() -> SkillMint:
        package = await catalog.get_package(db, body.package_id)
        if not owner.can_act_for(package.author_id):
            raise ForbiddenError("Only the package author can mint it")
        package_pk = package.id
        author_id = package.author_id
        paid = package.license in PAID_LICENSES

        existing = await db.execute(
            select(SkillMint.id).where(SkillMint.package_id == package_pk, SkillMint.owner_id == owner.id)
        )
        if existing.first() is not None:
            raise ConflictError(f"Package '{package_pk}' is already minted")

        record = SkillMint(
            id=uuid.uuid4(),
            package_id=package_pk,
            owner_id=owner.id,
            token_id=generate_token_id(),
            rarity=body.rarity,
            max_editions=max_editions,
            creator_royalty_percent=body.creator_royalty_percent,
        )
        db.add(record)
        try:
            await db.flush()
            if paid:
                await royalties.append_entry(
                    db,
                    package_id=package_pk,
                    beneficiary_id=author_id,
                    source=RoyaltySource.MINT,
                    amount_usd=royalties.ZERO,
                )
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ConflictError(f"Package '{package_pk}' is already minted")
        await db.refresh(record)
        return record

    record = await retry_transient(db, _mint)
    logger.info("minted %s for %s as %s", record.package_id, owner.username, record.token_id)
    return record


async def list_mints(db: AsyncSession, owner_id: uuid.UUID) -> list[SkillMint]:
    result = await db.execute(
        select(SkillMint).where(SkillMint.owner_id == owner_id).order_by(SkillMint.minted_at.desc())
    )
    return list(result.scalars().all())
