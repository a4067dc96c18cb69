from __future__ import annotations

from datetime import date, datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship as sa_relationship

from .db import Base


def relationship(*args, **kwargs):
    """Wrap SQLAlchemy relationship to forbid lazy loading by default."""
    kwargs.setdefault("lazy", "raise")
    return sa_relationship(*args, **kwargs)


class TeamMember(Base):
    """Person registry row (one role per member)."""

    __tablename__ = "people"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(sa.String(255), nullable=False, unique=True)
    full_name: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    role: Mapped[str] = mapped_column(sa.String(32), nullable=False, index=True)
    is_trusted_writer: Mapped[bool] = mapped_column(sa.Boolean(), nullable=False, server_default=sa.false())
    is_active: Mapped[bool] = mapped_column(sa.Boolean(), nullable=False, server_default=sa.true())
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False
    )

    authored_items: Mapped[list["ContentItemRecord"]] = relationship(back_populates="author", passive_deletes=True)
    assignments: Mapped[list["ProjectAssignment"]] = relationship(
        back_populates="person",
        foreign_keys="ProjectAssignment.person_id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ContentItemRecord(Base):
    __tablename__ = "content_items"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    author_id: Mapped[int] = mapped_column(sa.ForeignKey("people.id", ondelete="RESTRICT"), nullable=False, index=True)
    title: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    reference_url: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    planned_date: Mapped[date | None] = mapped_column(sa.Date(), nullable=True)
    status: Mapped[str] = mapped_column(sa.String(16), nullable=False, server_default="PENDING", index=True)
    production_stage: Mapped[str | None] = mapped_column(sa.String(32), nullable=True, index=True)
    rejection_count: Mapped[int] = mapped_column(sa.Integer(), nullable=False, server_default="0")
    is_dissolved: Mapped[bool] = mapped_column(sa.Boolean(), nullable=False, server_default=sa.false(), index=True)
    dissolution_reason: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    admin_remarks: Mapped[str] = mapped_column(sa.Text(), nullable=False, server_default="")
    feedback: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    # Review scores (1-10 each)
    hook_strength: Mapped[int | None] = mapped_column(sa.SmallInteger(), nullable=True)
    content_quality: Mapped[int | None] = mapped_column(sa.SmallInteger(), nullable=True)
    viral_potential: Mapped[int | None] = mapped_column(sa.SmallInteger(), nullable=True)
    replication_clarity: Mapped[int | None] = mapped_column(sa.SmallInteger(), nullable=True)
    overall_score: Mapped[float | None] = mapped_column(sa.Numeric(3, 1), nullable=True)
    # Posting
    posting_platform: Mapped[str | None] = mapped_column(sa.String(32), nullable=True)
    posting_caption: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    posting_heading: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    posting_hashtags: Mapped[list | None] = mapped_column(sa.JSON(), nullable=True)
    scheduled_post_time: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    posted_url: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    posted_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    posted_urls: Mapped[list | None] = mapped_column(sa.JSON(), nullable=True)
    version: Mapped[int] = mapped_column(sa.Integer(), nullable=False, server_default="1")
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False
    )

    author: Mapped[TeamMember] = relationship(back_populates="authored_items")
    assignments: Mapped[list["ProjectAssignment"]] = relationship(
        back_populates="content_item", cascade="all, delete-orphan", passive_deletes=True
    )
    events: Mapped[list["WorkflowEvent"]] = relationship(
        back_populates="content_item", cascade="all, delete-orphan", passive_deletes=True
    )


class ProjectAssignment(Base):
    __tablename__ = "project_assignments"
    __table_args__ = (sa.UniqueConstraint("content_item_id", "role", name="uq_project_assignments_item_role"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    content_item_id: Mapped[int] = mapped_column(
        sa.ForeignKey("content_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    person_id: Mapped[int] = mapped_column(sa.ForeignKey("people.id", ondelete="CASCADE"), nullable=False, index=True)
    role: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    assigned_by: Mapped[int | None] = mapped_column(sa.ForeignKey("people.id", ondelete="SET NULL"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )

    content_item: Mapped[ContentItemRecord] = relationship(back_populates="assignments")
    person: Mapped[TeamMember] = relationship(back_populates="assignments", foreign_keys=[person_id])


class WorkflowEvent(Base):
    """Committed workflow decision (one row per successful save)."""

    __tablename__ = "workflow_events"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    content_item_id: Mapped[int] = mapped_column(
        sa.ForeignKey("content_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    actor_id: Mapped[int | None] = mapped_column(sa.ForeignKey("people.id", ondelete="SET NULL"), nullable=True)
    from_stage: Mapped[str | None] = mapped_column(sa.String(32), nullable=True)
    to_stage: Mapped[str | None] = mapped_column(sa.String(32), nullable=True)
    payload_json: Mapped[dict | None] = mapped_column(sa.JSON(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)

    content_item: Mapped[ContentItemRecord] = relationship(back_populates="events")
