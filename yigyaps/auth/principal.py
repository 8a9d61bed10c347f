import uuid
from dataclasses import dataclass

from yigyaps.types import Role, tier_rank


@dataclass(frozen=True)
class Principal:
    """The authenticated caller for the duration of one request.

    Built either from signed-token claims or from the user row behind an API
    key; both paths yield this one type.
    """

    id: uuid.UUID
    username: str
    display_name: str
    tier: str
    role: str
    auth_method: str  # "jwt" | "apikey"

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def tier_rank(self) -> int:
        return tier_rank(self.tier)

    def can_act_for(self, owner_id: uuid.UUID) -> bool:
        return self.is_admin or self.id == owner_id
