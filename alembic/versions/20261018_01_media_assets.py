"""
Create media_assets.

- One row per uploaded asset (video or standalone thumbnail).
- Locators are stored as JSON; `owner_id` is indexed for per-owner listing.
"""

from alembic import op
import sqlalchemy as sa

# Revision identifiers, used by Alembic.
revision = "20261018_01_media_assets"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    asset_kind = sa.Enum("video", "thumbnail", name="asset_kind")

    op.create_table(
        "media_assets",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("kind", asset_kind, nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("locator", sa.JSON(), nullable=True),
        sa.Column("thumbnail_locator", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_media_assets"),
    )
    op.create_index("ix_media_assets_owner_id", "media_assets", ["owner_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_media_assets_owner_id", table_name="media_assets")
    op.drop_table("media_assets")
    sa.Enum(name="asset_kind").drop(op.get_bind(), checkfirst=True)
