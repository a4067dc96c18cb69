"""
Persistence for content items (ItemStore implementation on SQLAlchemy).

Writes are optimistic: save_item() issues
    UPDATE content_items ... WHERE id = :id AND version = :expected
and reports CONFLICT when no row matched, so two concurrent transitions
against the same stale stage cannot both win.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from reelflow.models import ContentItemRecord, ProjectAssignment, WorkflowEvent
from reelflow.services.workflow_types import (
    ASSIGNMENT_ROLES,
    ContentItem,
    ErrorCode,
    Ok,
    PostingPlatform,
    ProductionStage,
    Result,
    ReviewStatus,
    Role,
    Scores,
    fail,
)

logger = logging.getLogger(__name__)


def _scores_from_record(rec: ContentItemRecord) -> Scores | None:
    values = (rec.hook_strength, rec.content_quality, rec.viral_potential, rec.replication_clarity)
    if any(v is None for v in values):
        return None
    return Scores(*values)


def to_domain(rec: ContentItemRecord, assignments: list[ProjectAssignment]) -> ContentItem:
    assignees: dict[Role, int] = {}
    for a in assignments:
        role = Role.parse(a.role)
        if role in ASSIGNMENT_ROLES:
            assignees[role] = a.person_id
    return ContentItem(
        id=rec.id,
        author_id=rec.author_id,
        status=ReviewStatus.parse(rec.status),
        production_stage=ProductionStage.parse(rec.production_stage),
        rejection_count=rec.rejection_count or 0,
        is_dissolved=bool(rec.is_dissolved),
        dissolution_reason=rec.dissolution_reason,
        assignees=assignees,
        admin_remarks=rec.admin_remarks or "",
        scores=_scores_from_record(rec),
        feedback=rec.feedback,
        title=rec.title,
        reference_url=rec.reference_url,
        planned_date=rec.planned_date,
        posting_platform=PostingPlatform.parse(rec.posting_platform) if rec.posting_platform else None,
        posting_caption=rec.posting_caption,
        posting_heading=rec.posting_heading,
        posting_hashtags=tuple(rec.posting_hashtags or ()),
        scheduled_post_time=rec.scheduled_post_time,
        posted_url=rec.posted_url,
        posted_at=rec.posted_at,
        posted_urls=tuple(rec.posted_urls or ()),
        version=rec.version,
        created_at=rec.created_at,
        updated_at=rec.updated_at,
    )


def _column_values(item: ContentItem) -> dict[str, Any]:
    scores = item.scores
    overall = item.overall_score
    return {
        "title": item.title,
        "reference_url": item.reference_url,
        "status": item.status.value,
        "production_stage": item.production_stage.value if item.production_stage else None,
        "rejection_count": item.rejection_count,
        "is_dissolved": item.is_dissolved,
        "dissolution_reason": item.dissolution_reason,
        "admin_remarks": item.admin_remarks,
        "feedback": item.feedback,
        "hook_strength": scores.hook_strength if scores else None,
        "content_quality": scores.content_quality if scores else None,
        "viral_potential": scores.viral_potential if scores else None,
        "replication_clarity": scores.replication_clarity if scores else None,
        "overall_score": Decimal(str(overall)) if overall is not None else None,
        "planned_date": item.planned_date,
        "posting_platform": item.posting_platform.value if item.posting_platform else None,
        "posting_caption": item.posting_caption,
        "posting_heading": item.posting_heading,
        "posting_hashtags": list(item.posting_hashtags) or None,
        "scheduled_post_time": item.scheduled_post_time,
        "posted_url": item.posted_url,
        "posted_at": item.posted_at,
        "posted_urls": [dict(p) for p in item.posted_urls] or None,
    }


class ContentRepository:
    """ItemStore backed by an AsyncSession. Each write commits its own transaction."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _assignments(self, item_id: int) -> list[ProjectAssignment]:
        res = await self.session.execute(
            select(ProjectAssignment).where(ProjectAssignment.content_item_id == item_id)
        )
        return list(res.scalars().all())

    async def load_item(self, item_id: int) -> ContentItem | None:
        res = await self.session.execute(
            select(ContentItemRecord)
            .where(ContentItemRecord.id == item_id)
            .execution_options(populate_existing=True)
        )
        rec = res.scalar_one_or_none()
        if rec is None:
            return None
        return to_domain(rec, await self._assignments(item_id))

    async def create_item(self, item: ContentItem, *, actor_id: int | None = None) -> ContentItem:
        rec = ContentItemRecord(author_id=item.author_id, version=1, **_column_values(item))
        self.session.add(rec)
        await self.session.flush()

        for role, person_id in item.assignees.items():
            self.session.add(ProjectAssignment(
                content_item_id=rec.id, person_id=person_id, role=role.value, assigned_by=actor_id,
            ))
        self.session.add(WorkflowEvent(
            content_item_id=rec.id,
            event="auto_approved" if item.status == ReviewStatus.approved else "submitted",
            actor_id=actor_id,
            from_stage=None,
            to_stage=rec.production_stage,
            payload_json={"status": rec.status},
        ))
        await self.session.commit()
        logger.info(f"[repo] Created content item {rec.id} (status={rec.status}, stage={rec.production_stage})")
        return await self.load_item(rec.id)

    async def save_item(
        self,
        item: ContentItem,
        expected_version: int,
        *,
        event: str,
        actor_id: int | None = None,
        from_stage: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> Result[ContentItem]:
        if item.id is None:
            raise ValueError("save_item() needs a persisted item; use create_item()")

        res = await self.session.execute(
            update(ContentItemRecord)
            .where(and_(ContentItemRecord.id == item.id, ContentItemRecord.version == expected_version))
            .values(**_column_values(item), version=ContentItemRecord.version + 1, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        if res.rowcount == 0:
            await self.session.rollback()
            logger.warning(f"[repo] Version conflict on item {item.id} (expected v{expected_version})")
            return fail(
                ErrorCode.conflict,
                f"Item {item.id} was changed by someone else (expected version {expected_version})",
            )

        await self._sync_assignments(item, actor_id)
        self.session.add(WorkflowEvent(
            content_item_id=item.id,
            event=event,
            actor_id=actor_id,
            from_stage=from_stage,
            to_stage=item.production_stage.value if item.production_stage else None,
            payload_json=payload or None,
        ))
        await self.session.commit()

        saved = await self.load_item(item.id)
        return Ok(saved)

    async def _sync_assignments(self, item: ContentItem, actor_id: int | None) -> None:
        current = {Role.parse(a.role): a for a in await self._assignments(item.id)}
        for role in ASSIGNMENT_ROLES:
            wanted = item.assignees.get(role)
            existing = current.get(role)
            if existing is not None and existing.person_id == wanted:
                continue
            if existing is not None:
                await self.session.execute(
                    delete(ProjectAssignment).where(ProjectAssignment.id == existing.id)
                )
            if wanted is not None:
                self.session.add(ProjectAssignment(
                    content_item_id=item.id, person_id=wanted, role=role.value, assigned_by=actor_id,
                ))
        await self.session.flush()

    async def list_items(
        self,
        *,
        status: ReviewStatus | None = None,
        stage: ProductionStage | None = None,
        assignee_id: int | None = None,
        include_dissolved: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[ContentItem], int]:
        conditions = []
        if not include_dissolved:
            conditions.append(ContentItemRecord.is_dissolved.is_(False))
        if status is not None:
            conditions.append(ContentItemRecord.status == status.value)
        if stage is not None:
            conditions.append(ContentItemRecord.production_stage == stage.value)
        if assignee_id is not None:
            conditions.append(ContentItemRecord.id.in_(
                select(ProjectAssignment.content_item_id).where(ProjectAssignment.person_id == assignee_id)
            ))

        query = select(ContentItemRecord)
        count_query = select(func.count(ContentItemRecord.id))
        if conditions:
            query = query.where(and_(*conditions))
            count_query = count_query.where(and_(*conditions))

        res = await self.session.execute(
            query.order_by(ContentItemRecord.created_at.asc(), ContentItemRecord.id.asc())
            .offset(offset).limit(limit)
            .execution_options(populate_existing=True)
        )
        records = list(res.scalars().all())
        total = await self.session.scalar(count_query) or 0

        by_item: dict[int, list[ProjectAssignment]] = {r.id: [] for r in records}
        if records:
            a_res = await self.session.execute(
                select(ProjectAssignment).where(ProjectAssignment.content_item_id.in_(list(by_item)))
            )
            for a in a_res.scalars().all():
                by_item[a.content_item_id].append(a)

        return [to_domain(r, by_item[r.id]) for r in records], total

    async def list_events(self, item_id: int) -> list[WorkflowEvent]:
        res = await self.session.execute(
            select(WorkflowEvent)
            .where(WorkflowEvent.content_item_id == item_id)
            .order_by(WorkflowEvent.created_at.asc(), WorkflowEvent.id.asc())
        )
        return list(res.scalars().all())

    async def stage_counts(self) -> dict[str, int]:
        res = await self.session.execute(
            select(ContentItemRecord.status, ContentItemRecord.production_stage, func.count(ContentItemRecord.id))
            .where(ContentItemRecord.is_dissolved.is_(False))
            .group_by(ContentItemRecord.status, ContentItemRecord.production_stage)
        )
        counts: dict[str, int] = {}
        for status, stage, n in res.all():
            key = stage if status == ReviewStatus.approved.value and stage else status
            counts[key] = counts.get(key, 0) + n
        dissolved = await self.session.scalar(
            select(func.count(ContentItemRecord.id)).where(ContentItemRecord.is_dissolved.is_(True))
        )
        counts["DISSOLVED"] = dissolved or 0
        return counts
