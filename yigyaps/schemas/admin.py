from pydantic import Field

from yigyaps.schemas.common import CamelModel
from yigyaps.types import PackageStatus, Role, Tier


class RoleUpdate(CamelModel):
    role: Role


class TierUpdate(CamelModel):
    tier: Tier


class PackageStatusUpdate(CamelModel):
    status: PackageStatus
    reason: str | None = Field(default=None, max_length=500)


class CountStats(CamelModel):
    total: int
    today: int


class InstallStats(CamelModel):
    total: int
    active: int


class AdminStats(CamelModel):
    users: CountStats
    packages: CountStats
    installs: InstallStats
