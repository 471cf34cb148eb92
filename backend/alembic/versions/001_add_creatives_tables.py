"""add creatives and ad_insights tables

Revision ID: 001_add_creatives_tables
Revises:
Create Date: 2026-10-18 10:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "001_add_creatives_tables"
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    bind = op.get_bind()
    inspector = inspect(bind)

    if not inspector.has_table("creatives"):
        op.create_table(
            "creatives",
            sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
            sa.Column("creative_id", sa.String(length=64), nullable=False),
            sa.Column("ad_account_id", sa.String(length=64), nullable=False),
            sa.Column("client_id", sa.String(length=64), nullable=True),
            sa.Column("name", sa.Text(), nullable=True),
            sa.Column("primary_text", sa.Text(), nullable=True),
            sa.Column("headline", sa.Text(), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("body", sa.Text(), nullable=True),
            sa.Column("thumbnail_url", sa.Text(), nullable=True),
            sa.Column("child_attachments", JSON_TYPE, nullable=False),
            sa.Column("call_to_action", JSON_TYPE, nullable=True),
            sa.Column("assembly_mode", sa.String(length=32), nullable=False),
            sa.Column("media_type", sa.String(length=16), nullable=False),
            sa.Column("image_hashes", JSON_TYPE, nullable=False),
            sa.Column("image_urls", JSON_TYPE, nullable=False),
            sa.Column("video_ids", JSON_TYPE, nullable=False),
            sa.Column("video_urls", JSON_TYPE, nullable=False),
            sa.Column("preview_fragments", JSON_TYPE, nullable=False),
            sa.Column("object_story_spec", JSON_TYPE, nullable=True),
            sa.Column("raw_payload", JSON_TYPE, nullable=True),
            sa.Column("last_fetched_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_creatives_creative_id", "creatives", ["creative_id"], unique=True)
        op.create_index("ix_creatives_ad_account_id", "creatives", ["ad_account_id"], unique=False)
        op.create_index("ix_creatives_ad_account_creative", "creatives", ["ad_account_id", "creative_id"], unique=False)
        op.create_index("ix_creatives_last_fetched_at", "creatives", ["last_fetched_at"], unique=False)

    if not inspector.has_table("ad_insights"):
        op.create_table(
            "ad_insights",
            sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
            sa.Column("client_id", sa.String(length=64), nullable=False),
            sa.Column("ad_account_id", sa.String(length=64), nullable=False),
            sa.Column("ad_id", sa.String(length=64), nullable=False),
            sa.Column("creative_id", sa.String(length=64), nullable=True),
            sa.Column("date_start", sa.Date(), nullable=False),
            sa.Column("date_stop", sa.Date(), nullable=False),
            sa.Column("impressions", sa.Integer(), nullable=True),
            sa.Column("clicks", sa.Integer(), nullable=True),
            sa.Column("spend", sa.Numeric(precision=14, scale=2), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_ad_insights_client_id", "ad_insights", ["client_id"], unique=False)
        op.create_index("ix_ad_insights_client_dates", "ad_insights", ["client_id", "date_start", "date_stop"], unique=False)


def downgrade() -> None:
    bind = op.get_bind()
    inspector = inspect(bind)
    if inspector.has_table("ad_insights"):
        op.drop_index("ix_ad_insights_client_dates", table_name="ad_insights")
        op.drop_index("ix_ad_insights_client_id", table_name="ad_insights")
        op.drop_table("ad_insights")
    if inspector.has_table("creatives"):
        op.drop_index("ix_creatives_last_fetched_at", table_name="creatives")
        op.drop_index("ix_creatives_ad_account_creative", table_name="creatives")
        op.drop_index("ix_creatives_ad_account_id", table_name="creatives")
        op.drop_index("ix_creatives_creative_id", table_name="creatives")
        op.drop_table("creatives")
