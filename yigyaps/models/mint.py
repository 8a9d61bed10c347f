import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from yigyaps.database import Base, utcnow


class SkillMint(Base):
    """A creator's non-fungible claim record on a package."""

    __tablename__ = "skill_mints"
    __table_args__ = (UniqueConstraint("package_id", "owner_id", name="uq_skill_mints_package_owner"),)

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    package_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("skill_packages.id"), nullable=False, index=True
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    token_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    rarity: Mapped[str] = mapped_column(String(20), nullable=False, default="common")
    max_editions: Mapped[int | None] = mapped_column(Integer, nullable=True)  # None = unlimited
    creator_royalty_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("70.00"))
    minted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())
