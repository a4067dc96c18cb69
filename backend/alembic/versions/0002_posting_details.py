"""add planned shoot date and posting details

Revision ID: 0002_posting_details
Revises: 0001_create_workflow_tables
Create Date: 2026-10-19
"""

from alembic import op


# revision identifiers, used by Alembic.
revision = "0002_posting_details"
down_revision = "0001_create_workflow_tables"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("ALTER TABLE content_items ADD COLUMN IF NOT EXISTS planned_date DATE")
    op.execute("ALTER TABLE content_items ADD COLUMN IF NOT EXISTS posting_platform VARCHAR(32)")
    op.execute("ALTER TABLE content_items ADD COLUMN IF NOT EXISTS posting_caption TEXT")
    op.execute("ALTER TABLE content_items ADD COLUMN IF NOT EXISTS posting_heading TEXT")
    op.execute("ALTER TABLE content_items ADD COLUMN IF NOT EXISTS posting_hashtags JSON")
    op.execute("ALTER TABLE content_items ADD COLUMN IF NOT EXISTS scheduled_post_time TIMESTAMPTZ")
    op.execute("ALTER TABLE content_items ADD COLUMN IF NOT EXISTS posted_url TEXT")
    op.execute("ALTER TABLE content_items ADD COLUMN IF NOT EXISTS posted_at TIMESTAMPTZ")
    op.execute("ALTER TABLE content_items ADD COLUMN IF NOT EXISTS posted_urls JSON")
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_content_items_scheduled_post_time "
        "ON content_items (scheduled_post_time) WHERE scheduled_post_time IS NOT NULL"
    )


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS ix_content_items_scheduled_post_time")
    op.execute("ALTER TABLE content_items DROP COLUMN IF EXISTS posted_urls")
    op.execute("ALTER TABLE content_items DROP COLUMN IF EXISTS posted_at")
    op.execute("ALTER TABLE content_items DROP COLUMN IF EXISTS posted_url")
    op.execute("ALTER TABLE content_items DROP COLUMN IF EXISTS scheduled_post_time")
    op.execute("ALTER TABLE content_items DROP COLUMN IF EXISTS posting_hashtags")
    op.execute("ALTER TABLE content_items DROP COLUMN IF EXISTS posting_heading")
    op.execute("ALTER TABLE content_items DROP COLUMN IF EXISTS posting_caption")
    op.execute("ALTER TABLE content_items DROP COLUMN IF EXISTS posting_platform")
    op.execute("ALTER TABLE content_items DROP COLUMN IF EXISTS planned_date")
