"""Mints and royalties.

POST /v1/mints          mint a package the caller authored
GET  /v1/mints/mine     caller's mints
GET  /v1/royalties/me   caller's royalty summary
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from yigyaps.auth import Principal, get_current_principal
from yigyaps.database import get_db
from yigyaps.models.mint import SkillMint
from yigyaps.registry import mints, royalties
from yigyaps.schemas.ledger import MintOut, MintRequest, RoyaltyEntryOut, RoyaltySummary

mints_router = APIRouter(prefix="/mints", tags=["mints"])
royalties_router = APIRouter(prefix="/royalties", tags=["royalties"])


@mints_router.post("", response_model=MintOut, status_code=status.HTTP_201_CREATED)
async def mint_package(
    body: MintRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> SkillMint:
    return await mints.mint(db, principal, body)


@mints_router.get("/mine", response_model=list[MintOut])
async def my_mints(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> list[SkillMint]:
    return await mints.list_mints(db, principal.id)


@royalties_router.get("/me", response_model=RoyaltySummary)
async def my_royalties(
    since: datetime | None = None,
    until: datetime | None = None,
    recent: int = Query(20, ge=0, le=100),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> RoyaltySummary:
    total, count = await royalties.sum_by_beneficiary(db, principal.id, since=since, until=until)
    entries = await royalties.list_by_beneficiary(db, principal.id, limit=recent) if recent else []
    return RoyaltySummary(
        total_usd=total,
        count=count,
        recent=[RoyaltyEntryOut.model_validate(entry) for entry in entries],
    )
