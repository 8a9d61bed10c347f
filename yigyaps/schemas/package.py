import uuid
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any

from pydantic import Field, StringConstraints, field_validator, model_validator

from yigyaps.schemas.common import CamelModel
from yigyaps.types import MAX_TIER_RANK, PAID_LICENSES, Category, License, Maturity, Transport

# No control characters: tags are stored newline-separated for matching.
Tag = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50, pattern=r"^[^\x00-\x1f]+$")]

PACKAGE_ID_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9._-]*$"


def _check_url(value: str | None) -> str | None:
    if value is not None and not value.startswith(("http://", "https://")):
        raise ValueError("must be an http(s) URL")
    return value


class PackageFields(CamelModel):
    """Mutable package metadata, shared by publish and update requests."""

    display_name: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=500)
    readme: str | None = Field(default=None, max_length=20000)
    author_name: str = Field(min_length=1, max_length=100)
    author_url: str | None = Field(default=None, max_length=512)
    license: License = License.OPEN_SOURCE
    price_usd: Decimal | None = Field(default=None, ge=0, le=9999, decimal_places=4)
    required_tier: int = Field(default=0, ge=0, le=MAX_TIER_RANK)
    requires_api_key: bool = False
    api_key_instructions: str | None = Field(default=None, max_length=1000)
    category: Category = Category.OTHER
    maturity: Maturity = Maturity.EXPERIMENTAL
    tags: list[Tag] = Field(default_factory=list, max_length=10)
    mcp_transport: Transport = Transport.STDIO
    mcp_command: str | None = Field(default=None, max_length=500)
    mcp_url: str | None = Field(default=None, max_length=512)
    icon: str | None = Field(default=None, max_length=500)
    repository_url: str | None = Field(default=None, max_length=512)
    homepage_url: str | None = Field(default=None, max_length=512)

    _check_urls = field_validator("author_url", "mcp_url", "repository_url", "homepage_url")(_check_url)

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, tags: list[str]) -> list[str]:
        return list(dict.fromkeys(tag.lower() for tag in tags))

    @model_validator(mode="after")
    def _check_invariants(self) -> "PackageFields":
        paid = self.license in PAID_LICENSES
        if paid and (self.price_usd is None or self.price_usd <= 0):
            raise ValueError(f"priceUsd is required for {self.license.value} packages")
        if not paid:
            if self.price_usd:
                raise ValueError(f"priceUsd is only allowed for premium or enterprise packages, not {self.license.value}")
            self.price_usd = None

        if self.mcp_transport == Transport.STDIO:
            if not self.mcp_command:
                raise ValueError("mcpCommand is required for the stdio transport")
            if self.mcp_url:
                raise ValueError("mcpUrl is not used by the stdio transport")
        else:
            if not self.mcp_url:
                raise ValueError(f"mcpUrl is required for the {self.mcp_transport.value} transport")
            if self.mcp_command:
                raise ValueError(f"mcpCommand is not used by the {self.mcp_transport.value} transport")

        if self.requires_api_key is False:
            self.api_key_instructions = None
        return self


class PublishPackageRequest(PackageFields):
    package_id: str = Field(min_length=1, max_length=100, pattern=PACKAGE_ID_PATTERN)
    version: str = Field(min_length=1, max_length=50)


class UpdatePackageRequest(CamelModel):
    """Partial update; the merged result is re-validated as a full package."""

    display_name: str | None = None
    description: str | None = None
    readme: str | None = None
    author_name: str | None = None
    author_url: str | None = None
    license: License | None = None
    price_usd: Decimal | None = None
    required_tier: int | None = None
    requires_api_key: bool | None = None
    api_key_instructions: str | None = None
    category: Category | None = None
    maturity: Maturity | None = None
    tags: list[str] | None = None
    mcp_transport: Transport | None = None
    mcp_command: str | None = None
    mcp_url: str | None = None
    icon: str | None = None
    repository_url: str | None = None
    homepage_url: str | None = None


class SkillPackageOut(CamelModel):
    id: uuid.UUID
    package_id: str
    version: str
    display_name: str
    description: str
    readme: str | None
    author_id: uuid.UUID
    author_name: str
    author_url: str | None
    license: str
    price_usd: Decimal | None
    required_tier: int
    requires_api_key: bool
    api_key_instructions: str | None
    category: str
    maturity: str
    tags: list[str]
    mcp_transport: str
    mcp_command: str | None
    mcp_url: str | None
    icon: str | None
    repository_url: str | None
    homepage_url: str | None
    install_count: int
    rating_mean: float | None
    rating_count: int
    status: str
    created_at: datetime
    updated_at: datetime

    @field_validator("rating_mean", mode="before")
    @classmethod
    def _mean_as_float(cls, value: Any) -> Any:
        if isinstance(value, Decimal):
            return round(float(value), 4)
        return value
