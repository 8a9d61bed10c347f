from yigyaps.schemas.admin import AdminStats, PackageStatusUpdate, RoleUpdate, TierUpdate
from yigyaps.schemas.auth import (
    ApiKeyCreate,
    ApiKeyCreated,
    ApiKeyOut,
    AuthorizeResponse,
    LoginRequest,
    ProfileUpdate,
    PublicUserOut,
    TokenResponse,
    UserOut,
)
from yigyaps.schemas.common import Page
from yigyaps.schemas.installation import InstallationOut, InstallRequest, UpdateInstallationRequest
from yigyaps.schemas.ledger import MintOut, MintRequest, RoyaltyEntryOut, RoyaltySummary
from yigyaps.schemas.package import PublishPackageRequest, SkillPackageOut, UpdatePackageRequest
from yigyaps.schemas.registry import Discovery, HealthResponse, RegistryInfo
from yigyaps.schemas.review import ReviewCreate, ReviewOut, ReviewUpdate

__all__ = [
    "AdminStats",
    "PackageStatusUpdate",
    "RoleUpdate",
    "TierUpdate",
    "ApiKeyCreate",
    "ApiKeyCreated",
    "ApiKeyOut",
    "AuthorizeResponse",
    "LoginRequest",
    "ProfileUpdate",
    "PublicUserOut",
    "TokenResponse",
    "UserOut",
    "Page",
    "InstallRequest",
    "InstallationOut",
    "UpdateInstallationRequest",
    "MintRequest",
    "MintOut",
    "RoyaltyEntryOut",
    "RoyaltySummary",
    "PublishPackageRequest",
    "UpdatePackageRequest",
    "SkillPackageOut",
    "Discovery",
    "HealthResponse",
    "RegistryInfo",
    "ReviewCreate",
    "ReviewUpdate",
    "ReviewOut",
]
