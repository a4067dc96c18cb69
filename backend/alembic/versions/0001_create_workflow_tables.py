"""create workflow tables

Revision ID: 0001_create_workflow_tables
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_create_workflow_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "people",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column("is_trusted_writer", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_people_role", "people", ["role"])

    op.create_table(
        "content_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("people.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("reference_url", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="PENDING"),
        sa.Column("production_stage", sa.String(length=32), nullable=True),
        sa.Column("rejection_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_dissolved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("dissolution_reason", sa.Text(), nullable=True),
        sa.Column("admin_remarks", sa.Text(), nullable=False, server_default=""),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("hook_strength", sa.SmallInteger(), nullable=True),
        sa.Column("content_quality", sa.SmallInteger(), nullable=True),
        sa.Column("viral_potential", sa.SmallInteger(), nullable=True),
        sa.Column("replication_clarity", sa.SmallInteger(), nullable=True),
        sa.Column("overall_score", sa.Numeric(3, 1), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_content_items_author_id", "content_items", ["author_id"])
    op.create_index("ix_content_items_status", "content_items", ["status"])
    op.create_index("ix_content_items_production_stage", "content_items", ["production_stage"])
    op.create_index("ix_content_items_is_dissolved", "content_items", ["is_dissolved"])

    op.create_table(
        "project_assignments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "content_item_id",
            sa.Integer(),
            sa.ForeignKey("content_items.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("person_id", sa.Integer(), sa.ForeignKey("people.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column("assigned_by", sa.Integer(), sa.ForeignKey("people.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("content_item_id", "role", name="uq_project_assignments_item_role"),
    )
    op.create_index("ix_project_assignments_content_item_id", "project_assignments", ["content_item_id"])
    op.create_index("ix_project_assignments_person_id", "project_assignments", ["person_id"])

    op.create_table(
        "workflow_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "content_item_id",
            sa.Integer(),
            sa.ForeignKey("content_items.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("event", sa.String(length=64), nullable=False),
        sa.Column("actor_id", sa.Integer(), sa.ForeignKey("people.id", ondelete="SET NULL"), nullable=True),
        sa.Column("from_stage", sa.String(length=32), nullable=True),
        sa.Column("to_stage", sa.String(length=32), nullable=True),
        sa.Column("payload_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_workflow_events_content_item_id", "workflow_events", ["content_item_id"])


def downgrade() -> None:
    op.drop_index("ix_workflow_events_content_item_id", table_name="workflow_events")
    op.drop_table("workflow_events")
    op.drop_index("ix_project_assignments_person_id", table_name="project_assignments")
    op.drop_index("ix_project_assignments_content_item_id", table_name="project_assignments")
    op.drop_table("project_assignments")
    op.drop_index("ix_content_items_is_dissolved", table_name="content_items")
    op.drop_index("ix_content_items_production_stage", table_name="content_items")
    op.drop_index("ix_content_items_status", table_name="content_items")
    op.drop_index("ix_content_items_author_id", table_name="content_items")
    op.drop_table("content_items")
    op.drop_index("ix_people_role", table_name="people")
    op.drop_table("people")
