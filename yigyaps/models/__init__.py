from yigyaps.models.api_key import ApiKey
from yigyaps.models.installation import SkillInstallation
from yigyaps.models.mint import SkillMint
from yigyaps.models.package import SkillPackage
from yigyaps.models.review import SkillReview
from yigyaps.models.royalty import RoyaltyLedgerEntry
from yigyaps.models.user import User

__all__ = [
    "User",
    "ApiKey",
    "SkillPackage",
    "SkillInstallation",
    "SkillReview",
    "SkillMint",
    "RoyaltyLedgerEntry",
]
