"""init

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("github_id", sa.String(64), nullable=False, unique=True),
        sa.Column("github_username", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("avatar_url", sa.String(512), nullable=True),
        sa.Column("tier", sa.String(20), nullable=False, server_default="free"),
        sa.Column("role", sa.String(20), nullable=False, server_default="user"),
        sa.Column("is_verified_creator", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("total_packages", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_earnings_usd", sa.Numeric(12, 4), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("last_login_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_users_github_id", "users", ["github_id"])
    op.create_index("ix_users_github_username", "users", ["github_username"])

    op.create_table(
        "api_keys",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("key_hash", sa.String(64), nullable=False, unique=True),
        sa.Column("key_prefix", sa.String(16), nullable=False),
        sa.Column("scopes", sa.JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_api_keys_user_id", "api_keys", ["user_id"])

    op.create_table(
        "skill_packages",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("package_id", sa.String(100), nullable=False),
        sa.Column("version", sa.String(50), nullable=False),
        sa.Column("display_name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("readme", sa.Text, nullable=True),
        sa.Column("author_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("author_name", sa.String(100), nullable=False),
        sa.Column("author_url", sa.String(512), nullable=True),
        sa.Column("license", sa.String(20), nullable=False, server_default="open-source"),
        sa.Column("price_usd", sa.Numeric(10, 4), nullable=True),
        sa.Column("required_tier", sa.Integer, nullable=False, server_default="0"),
        sa.Column("requires_api_key", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("api_key_instructions", sa.Text, nullable=True),
        sa.Column("category", sa.String(50), nullable=False, server_default="other"),
        sa.Column("maturity", sa.String(20), nullable=False, server_default="experimental"),
        sa.Column("tags", sa.JSON, nullable=False),
        sa.Column("mcp_transport", sa.String(10), nullable=False, server_default="stdio"),
        sa.Column("mcp_command", sa.String(500), nullable=True),
        sa.Column("mcp_url", sa.String(512), nullable=True),
        sa.Column("icon", sa.String(500), nullable=True),
        sa.Column("repository_url", sa.String(512), nullable=True),
        sa.Column("homepage_url", sa.String(512), nullable=True),
        sa.Column("install_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("rating_mean", sa.Numeric(6, 4), nullable=True),
        sa.Column("rating_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("package_id", "version", name="uq_skill_packages_package_version"),
    )
    op.create_index("ix_skill_packages_package_id", "skill_packages", ["package_id"])
    op.create_index("ix_skill_packages_author_id", "skill_packages", ["author_id"])
    op.create_index("ix_skill_packages_category", "skill_packages", ["category"])
    op.create_index("ix_skill_packages_maturity", "skill_packages", ["maturity"])

    op.create_table(
        "skill_installations",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("package_id", UUID(as_uuid=True), sa.ForeignKey("skill_packages.id"), nullable=False),
        sa.Column("agent_id", sa.String(255), nullable=False),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("installer_tier", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("configuration", sa.JSON, nullable=True),
        sa.Column("installed_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_skill_installations_package_id", "skill_installations", ["package_id"])
    op.create_index("ix_skill_installations_agent_id", "skill_installations", ["agent_id"])
    op.create_index("ix_skill_installations_user_id", "skill_installations", ["user_id"])
    op.create_index(
        "uq_skill_installations_active",
        "skill_installations",
        ["package_id", "agent_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
    )

    op.create_table(
        "skill_reviews",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("package_id", UUID(as_uuid=True), sa.ForeignKey("skill_packages.id"), nullable=False),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("user_name", sa.String(255), nullable=False),
        sa.Column("rating", sa.Integer, nullable=False),
        sa.Column("title", sa.String(200), nullable=True),
        sa.Column("comment", sa.String(1000), nullable=True),
        sa.Column("verified", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("package_id", "user_id", name="uq_skill_reviews_package_user"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_skill_reviews_rating"),
    )
    op.create_index("ix_skill_reviews_package_id", "skill_reviews", ["package_id"])
    op.create_index("ix_skill_reviews_user_id", "skill_reviews", ["user_id"])

    op.create_table(
        "skill_mints",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("package_id", UUID(as_uuid=True), sa.ForeignKey("skill_packages.id"), nullable=False),
        sa.Column("owner_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("token_id", sa.String(64), nullable=False, unique=True),
        sa.Column("rarity", sa.String(20), nullable=False, server_default="common"),
        sa.Column("minted_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("package_id", "owner_id", name="uq_skill_mints_package_owner"),
    )
    op.create_index("ix_skill_mints_package_id", "skill_mints", ["package_id"])
    op.create_index("ix_skill_mints_owner_id", "skill_mints", ["owner_id"])

    op.create_table(
        "royalty_ledger",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("package_id", UUID(as_uuid=True), sa.ForeignKey("skill_packages.id"), nullable=False),
        sa.Column("beneficiary_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("source", sa.String(20), nullable=False),
        sa.Column("amount_usd", sa.Numeric(10, 4), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("installation_id", UUID(as_uuid=True), sa.ForeignKey("skill_installations.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_royalty_ledger_package_id", "royalty_ledger", ["package_id"])
    op.create_index("ix_royalty_ledger_beneficiary_id", "royalty_ledger", ["beneficiary_id"])


def downgrade() -> None:
    op.drop_table("royalty_ledger")
    op.drop_table("skill_mints")
    op.drop_table("skill_reviews")
    op.drop_index("uq_skill_installations_active", table_name="skill_installations")
    op.drop_table("skill_installations")
    op.drop_table("skill_packages")
    op.drop_table("api_keys")
    op.drop_table("users")
