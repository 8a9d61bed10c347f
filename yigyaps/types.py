"""Shared enumerations for the registry, the SDK and the CLI."""

from enum import StrEnum


class Tier(StrEnum):
    FREE = "free"
    PRO = "pro"
    LEGENDARY = "legendary"


# Monotonic access levels; a package's ``required_tier`` is one of these ranks.
TIER_RANK: dict[str, int] = {Tier.FREE: 0, Tier.PRO: 1, Tier.LEGENDARY: 2}
MAX_TIER_RANK = max(TIER_RANK.values())


def tier_rank(tier: str) -> int:
    return TIER_RANK.get(tier, 0)


def tier_for_rank(rank: int) -> str:
    for name, value in TIER_RANK.items():
        if value == rank:
            return str(name)
    return Tier.LEGENDARY.value


class Role(StrEnum):
    USER = "user"
    ADMIN = "admin"


class License(StrEnum):
    OPEN_SOURCE = "open-source"
    FREE = "free"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


PAID_LICENSES = frozenset({License.PREMIUM, License.ENTERPRISE})


class Category(StrEnum):
    DEVELOPMENT = "development"
    COMMUNICATION = "communication"
    PRODUCTIVITY = "productivity"
    RESEARCH = "research"
    INTEGRATION = "integration"
    DATA = "data"
    AUTOMATION = "automation"
    SECURITY = "security"
    AI_ML = "ai-ml"
    TOOLS = "tools"
    OTHER = "other"


class Maturity(StrEnum):
    EXPERIMENTAL = "experimental"
    BETA = "beta"
    STABLE = "stable"
    DEPRECATED = "deprecated"


class Transport(StrEnum):
    STDIO = "stdio"
    HTTP = "http"
    SSE = "sse"


class InstallationStatus(StrEnum):
    ACTIVE = "active"
    DISABLED = "disabled"
    REVOKED = "revoked"


# Allowed forward moves; a row never goes back to an earlier status.
STATUS_TRANSITIONS: dict[str, frozenset[str]] = {
    InstallationStatus.ACTIVE: frozenset({InstallationStatus.DISABLED, InstallationStatus.REVOKED}),
    InstallationStatus.DISABLED: frozenset({InstallationStatus.REVOKED}),
    InstallationStatus.REVOKED: frozenset(),
}


class RoyaltySource(StrEnum):
    INSTALL = "install"
    MINT = "mint"
    ADJUSTMENT = "adjustment"


class Rarity(StrEnum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


# Edition caps when a mint does not set its own; None means unlimited.
DEFAULT_MAX_EDITIONS: dict[str, int | None] = {
    Rarity.COMMON: None,
    Rarity.RARE: 1000,
    Rarity.EPIC: 100,
    Rarity.LEGENDARY: 10,
}


class SearchSort(StrEnum):
    RELEVANCE = "relevance"
    INSTALLS = "installs"
    RATING = "rating"
    RECENCY = "recency"
    NAME = "name"


class ReviewSort(StrEnum):
    NEWEST = "newest"
    HIGHEST = "highest"
    LOWEST = "lowest"


class PackageStatus(StrEnum):
    ACTIVE = "active"
    ARCHIVED = "archived"
    BANNED = "banned"
