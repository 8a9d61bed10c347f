"""package moderation status, searchable tag text, user profile fields, mint editions

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19
"""

import sqlalchemy as sa

from alembic import op

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("skill_packages", sa.Column("status", sa.String(20), nullable=False, server_default="active"))
    op.create_index("ix_skill_packages_status", "skill_packages", ["status"])
    op.add_column("skill_packages", sa.Column("tags_text", sa.Text, nullable=False, server_default=""))
    # Newline-wrapped lowercase tags, matching models.package.join_tags.
    op.execute(
        """
        UPDATE skill_packages
        SET tags_text = E'\\n' || (
            SELECT string_agg(lower(tag), E'\\n') FROM json_array_elements_text(tags) AS tag
        ) || E'\\n'
        WHERE json_array_length(tags) > 0
        """
    )

    op.add_column("users", sa.Column("bio", sa.Text, nullable=True))
    op.add_column("users", sa.Column("website_url", sa.String(512), nullable=True))

    op.add_column("skill_mints", sa.Column("max_editions", sa.Integer, nullable=True))
    op.add_column(
        "skill_mints",
        sa.Column("creator_royalty_percent", sa.Numeric(5, 2), nullable=False, server_default="70.00"),
    )


def downgrade() -> None:
    op.drop_column("skill_mints", "creator_royalty_percent")
    op.drop_column("skill_mints", "max_editions")
    op.drop_column("users", "website_url")
    op.drop_column("users", "bio")
    op.drop_column("skill_packages", "tags_text")
    op.drop_index("ix_skill_packages_status", table_name="skill_packages")
    op.drop_column("skill_packages", "status")
