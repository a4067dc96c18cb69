"""
Watchdog service: finds items waiting too long on an admin decision.

Stale criteria (updated_at < now - STALE_REVIEW_HOURS, not dissolved):
- status == PENDING (script waiting for review)
- production_stage == SHOOT_REVIEW
- production_stage == EDIT_REVIEW

The watchdog never changes workflow state; it only reports and warns admins.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from reelflow.models import ContentItemRecord, ProjectAssignment, TeamMember
from reelflow.services.content_repository import ContentRepository
from reelflow.services.stage_graph import REVIEW_STAGES
from reelflow.services.team_directory import active_assignment_filter
from reelflow.services.workflow_types import ReviewStatus
from reelflow.settings import get_settings

logger = logging.getLogger(__name__)


def _waiting_on(rec: ContentItemRecord) -> str:
    if rec.status == ReviewStatus.pending.value:
        return "SCRIPT_REVIEW"
    return rec.production_stage or "-"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def run_watchdog(
    session: AsyncSession, *, dry_run: bool = False, now: datetime | None = None,
) -> dict[str, Any]:
    """Find stale reviews and warn admins.

    Returns a report dict.
    """
    settings = get_settings()
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(hours=settings.stale_review_hours)

    res = await session.execute(
        select(ContentItemRecord).where(and_(
            ContentItemRecord.is_dissolved.is_(False),
            ContentItemRecord.updated_at < cutoff,
            or_(
                ContentItemRecord.status == ReviewStatus.pending.value,
                ContentItemRecord.production_stage.in_(sorted(s.value for s in REVIEW_STAGES)),
            ),
        )).order_by(ContentItemRecord.updated_at.asc())
    )
    stale = list(res.scalars().all())

    report_items: list[dict] = []
    for rec in stale:
        age_hours = (now - _as_utc(rec.updated_at)).total_seconds() / 3600
        report_items.append({
            "item_id": rec.id,
            "title": rec.title,
            "waiting_on": _waiting_on(rec),
            "age_hours": round(age_hours),
        })

    if report_items and not dry_run:
        from reelflow.services.notify import notify_warn
        summary = ", ".join(
            f"#{it['item_id']}({it['waiting_on']} {it['age_hours']}h)" for it in report_items[:10]
        )
        await notify_warn(f"Watchdog: {len(report_items)} reviews waiting", summary)

    logger.info(f"[watchdog] Found {len(report_items)} stale reviews (dry_run={dry_run})")

    return {
        "stale_count": len(report_items),
        "items": report_items,
        "dry_run": dry_run,
        "run_at": now.isoformat(),
        "settings": {"stale_review_hours": settings.stale_review_hours},
    }


async def get_health(session: AsyncSession) -> dict[str, Any]:
    """Return pipeline overview: items per stage, team size, busiest people."""
    settings = get_settings()
    counts = await ContentRepository(session).stage_counts()

    team_q = await session.execute(
        select(TeamMember.role, func.count(TeamMember.id))
        .where(TeamMember.is_active.is_(True))
        .group_by(TeamMember.role)
    )
    team = {role: n for role, n in team_q.all()}

    load_q = await session.execute(
        select(ProjectAssignment.person_id, func.count(ProjectAssignment.id))
        .join(ContentItemRecord, ContentItemRecord.id == ProjectAssignment.content_item_id)
        .where(active_assignment_filter())
        .group_by(ProjectAssignment.person_id)
        .order_by(func.count(ProjectAssignment.id).desc())
        .limit(5)
    )
    busiest = [{"person_id": pid, "active": n} for pid, n in load_q.all()]

    return {
        "items_by_stage": counts,
        "team_by_role": team,
        "busiest": busiest,
        "settings": {
            "dissolution_threshold": settings.dissolution_threshold,
            "stale_review_hours": settings.stale_review_hours,
            "celery_enabled": settings.celery_enabled,
            "assignment_lock_enabled": settings.assignment_lock_enabled,
        },
    }
