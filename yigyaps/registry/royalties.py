"""Append-only royalty ledger.

There is no update or delete function in this module. Entries are only ever
added, inside the transaction of the write that earned them.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from yigyaps.models.royalty import RoyaltyLedgerEntry
from yigyaps.models.user import User

MONEY_QUANTUM = Decimal("0.0001")
ZERO = Decimal("0.0000")


def quantize_money(value: object) -> Decimal:
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(MONEY_QUANTUM)


async def append_entry(
    db: AsyncSession,
    *,
    package_id: uuid.UUID,
    beneficiary_id: uuid.UUID,
    source: str,
    amount_usd: Decimal,
    installation_id: uuid.UUID | None = None,
) -> RoyaltyLedgerEntry:
    """Add one entry and bump the beneficiary's running total. Does not commit."""
    amount = quantize_money(amount_usd)
    entry = RoyaltyLedgerEntry(
        id=uuid.uuid4(),
        package_id=package_id,
        beneficiary_id=beneficiary_id,
        source=source,
        amount_usd=amount,
        installation_id=installation_id,
    )
    db.add(entry)
    if amount:
        await db.execute(
            update(User)
            .where(User.id == beneficiary_id)
            .values(total_earnings_usd=User.total_earnings_usd + amount)
        )
    await db.flush()
    return entry


async def sum_by_beneficiary(
    db: AsyncSession,
    beneficiary_id: uuid.UUID,
    since: datetime | None = None,
    until: datetime | None = None,
) -> tuple[Decimal, int]:
    """Return ``(total, count)`` of the entries credited to *beneficiary_id*."""
    stmt = select(func.coalesce(func.sum(RoyaltyLedgerEntry.amount_usd), 0), func.count(RoyaltyLedgerEntry.id)).where(
        RoyaltyLedgerEntry.beneficiary_id == beneficiary_id
    )
    if since is not None:
        stmt = stmt.where(RoyaltyLedgerEntry.created_at >= since)
    if until is not None:
        stmt = stmt.where(RoyaltyLedgerEntry.created_at < until)
    total, count = (await db.execute(stmt)).one()
    return quantize_money(total), count


async def list_by_beneficiary(db: AsyncSession, beneficiary_id: uuid.UUID, limit: int = 20) -> list[RoyaltyLedgerEntry]:
    result = await db.execute(
        select(RoyaltyLedgerEntry)
        .where(RoyaltyLedgerEntry.beneficiary_id == beneficiary_id)
        .order_by(RoyaltyLedgerEntry.created_at.desc(), RoyaltyLedgerEntry.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
