"""
Operations endpoints: pipeline stats, stale review watchdog, scheduler jobs.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from .deps import SessionDep, get_actor, require_admin
from .services.workflow_types import Person

router = APIRouter(prefix="/api/ops", tags=["ops"])


@router.get("/stats")
async def stats_endpoint(
    session: AsyncSession = SessionDep,
    actor: Person = Depends(get_actor),
):
    """Items per stage, team size per role, busiest people."""
    from .services.scheduler import scheduler_service
    from .services.watchdog_service import get_health

    health = await get_health(session)
    health["scheduler"] = {"running": scheduler_service.is_running(), "jobs": scheduler_service.get_jobs()}
    return health


@router.post("/watchdog/run")
async def run_watchdog_endpoint(
    dry_run: bool = Query(default=True),
    session: AsyncSession = SessionDep,
    actor: Person = Depends(require_admin),
):
    """Report items waiting on review longer than STALE_REVIEW_HOURS."""
    from .services.watchdog_service import run_watchdog
    return await run_watchdog(session, dry_run=dry_run)
