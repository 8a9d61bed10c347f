import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, validates

from yigyaps.database import Base, utcnow


class SkillPackage(Base):
    """One published version of a skill.

    ``install_count``, ``rating_mean`` and ``rating_count`` are denormalized
    aggregates; they are rewritten in the same transaction as the
    installation or review that changes them.
    """

    __tablename__ = "skill_packages"
    __table_args__ = (UniqueConstraint("package_id", "version", name="uq_skill_packages_package_version"),)

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    package_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    version: Mapped[str] = mapped_column(String(50), nullable=False)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    readme: Mapped[str | None] = mapped_column(Text, nullable=True)

    author_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    author_name: Mapped[str] = mapped_column(String(100), nullable=False)
    author_url: Mapped[str | None] = mapped_column(String(512), nullable=True)

    license: Mapped[str] = mapped_column(String(20), nullable=False, default="open-source")
    price_usd: Mapped[Decimal | None] = mapped_column(Numeric(10, 4), nullable=True)
    required_tier: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    requires_api_key: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    api_key_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)

    category: Mapped[str] = mapped_column(String(50), nullable=False, default="other", index=True)
    maturity: Mapped[str] = mapped_column(String(20), nullable=False, default="experimental", index=True)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    # Lowercased tags, each wrapped in TAG_SEPARATOR, so one tag can be matched with LIKE.
    tags_text: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")

    mcp_transport: Mapped[str] = mapped_column(String(10), nullable=False, default="stdio")  # stdio | http | sse
    mcp_command: Mapped[str | None] = mapped_column(String(500), nullable=True)
    mcp_url: Mapped[str | None] = mapped_column(String(512), nullable=True)

    icon: Mapped[str | None] = mapped_column(String(500), nullable=True)
    repository_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    homepage_url: Mapped[str | None] = mapped_column(String(512), nullable=True)

    # Moderation state: active, archived or banned. Only active packages are listed or installable.
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", index=True)

    install_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rating_mean: Mapped[Decimal | None] = mapped_column(Numeric(6, 4), nullable=True)
    rating_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @validates("tags")
    def _sync_tags_text(self, _key: str, tags: list[str]) -> list[str]:
        self.tags_text = join_tags(tags)
        return tags


TAG_SEPARATOR = "\n"


def join_tags(tags: list[str]) -> str:
    if not tags:
        return ""
    return TAG_SEPARATOR + TAG_SEPARATOR.join(tag.lower() for tag in tags) + TAG_SEPARATOR
