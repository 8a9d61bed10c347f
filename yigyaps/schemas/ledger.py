import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import Field

from yigyaps.schemas.common import CamelModel
from yigyaps.types import Rarity


class MintRequest(CamelModel):
    package_id: uuid.UUID
    rarity: Rarity = Rarity.COMMON
    # None picks the rarity's default cap.
    max_editions: int | None = Field(default=None, ge=1)
    creator_royalty_percent: Decimal = Field(default=Decimal("70"), ge=0, le=100, decimal_places=2)


class MintOut(CamelModel):
    id: uuid.UUID
    package_id: uuid.UUID
    owner_id: uuid.UUID
    token_id: str
    rarity: str
    max_editions: int | None
    creator_royalty_percent: Decimal
    minted_at: datetime


class RoyaltyEntryOut(CamelModel):
    id: uuid.UUID
    package_id: uuid.UUID
    beneficiary_id: uuid.UUID
    source: str
    amount_usd: Decimal
    currency: str
    installation_id: uuid.UUID | None
    created_at: datetime


class RoyaltySummary(CamelModel):
    total_usd: Decimal
    count: int
    recent: list[RoyaltyEntryOut]
