import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import Field, field_validator

from yigyaps.schemas.common import CamelModel


class LoginRequest(CamelModel):
    code: str = Field(min_length=1)
    state: str | None = None


class UserOut(CamelModel):
    id: uuid.UUID
    github_username: str
    display_name: str
    email: str | None
    avatar_url: str | None
    bio: str | None = None
    website_url: str | None = None
    tier: str
    role: str
    is_verified_creator: bool
    total_packages: int
    total_earnings_usd: Decimal
    created_at: datetime
    last_login_at: datetime


class TokenResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserOut


class AuthorizeResponse(CamelModel):
    url: str
    state: str


class ApiKeyCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    scopes: list[str] = Field(default_factory=list)
    expires_in_days: int | None = Field(default=None, ge=1, le=365)


class ApiKeyOut(CamelModel):
    id: uuid.UUID
    name: str
    key_prefix: str
    scopes: list[str]
    created_at: datetime
    last_used_at: datetime | None
    expires_at: datetime | None
    revoked_at: datetime | None


class ApiKeyCreated(ApiKeyOut):
    key: str


class ProfileUpdate(CamelModel):
    """``PATCH /v1/users/me``; an empty ``websiteUrl`` or ``bio`` clears it."""

    display_name: str | None = Field(default=None, max_length=255)
    bio: str | None = Field(default=None, max_length=500)
    website_url: str | None = Field(default=None, max_length=512)

    @field_validator("display_name")
    @classmethod
    def _display_name_not_blank(cls, value: str | None) -> str | None:
        if value is not None:
            value = value.strip()
            if not value:
                raise ValueError("display name cannot be empty")
        return value

    @field_validator("bio", "website_url")
    @classmethod
    def _blank_clears(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @field_validator("website_url")
    @classmethod
    def _website_is_url(cls, value: str | None) -> str | None:
        if value is not None and not value.startswith(("http://", "https://")):
            raise ValueError("must be an http(s) URL")
        return value


class PublicUserOut(CamelModel):
    """What anyone may see about a user: no email, tier, role or earnings."""

    id: uuid.UUID
    github_username: str
    display_name: str
    avatar_url: str | None
    bio: str | None
    website_url: str | None
    is_verified_creator: bool
    total_packages: int
    created_at: datetime
