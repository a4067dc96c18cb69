"""
Scheduler Service

Runs periodic housekeeping jobs:
- stale review watchdog (warns admins about items stuck in review)

Single-leader election via Postgres advisory locks:
- Only the instance that acquires the lock executes the tick
- Other instances silently skip
- Controlled by SCHEDULER_ENABLED env (default: true)
"""
from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from reelflow.db import make_engine, make_session_factory
from reelflow.settings import get_settings

logger = logging.getLogger("scheduler")

# Advisory lock keys (arbitrary int64, unique per job type)
LOCK_STALE_REVIEWS = 910_001


class SchedulerService:
    """Periodic jobs, executed by one backend instance at a time.

    Each tick takes pg_try_advisory_lock; instances that miss it skip.
    """

    _instance: "SchedulerService | None" = None

    def __init__(self):
        self.scheduler = AsyncIOScheduler()
        self._session_factory: async_sessionmaker | None = None
        self._running = False

    @classmethod
    def get_instance(cls) -> "SchedulerService":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def configure(self, database_url: str):
        self._session_factory = make_session_factory(make_engine(database_url))

    async def _get_session(self) -> AsyncSession:
        if not self._session_factory:
            self.configure(get_settings().async_database_url)
        return self._session_factory()

    async def _try_advisory_lock(self, session: AsyncSession, lock_key: int) -> bool:
        """Non-blocking session-level advisory lock; released when the connection closes."""
        result = await session.execute(text(f"SELECT pg_try_advisory_lock({lock_key})"))
        return bool(result.scalar())

    async def _release_advisory_lock(self, session: AsyncSession, lock_key: int):
        await session.execute(text(f"SELECT pg_advisory_unlock({lock_key})"))

    def start(self):
        """Start the scheduler (respects SCHEDULER_ENABLED env)."""
        settings = get_settings()
        if not settings.scheduler_enabled:
            logger.info("Scheduler DISABLED by SCHEDULER_ENABLED=false, skipping start")
            return

        if self._running:
            return

        if settings.watchdog_enabled:
            self.scheduler.add_job(
                self._run_stale_reviews,
                IntervalTrigger(minutes=settings.watchdog_interval_minutes),
                id="stale_reviews",
                name="Stale review watchdog",
                replace_existing=True,
            )

        self.scheduler.start()
        self._running = True
        logger.info("Scheduler started (single-leader mode via advisory locks)")

    def stop(self):
        if not self._running:
            return
        self.scheduler.shutdown(wait=False)
        self._running = False
        logger.info("Scheduler stopped")

    def is_running(self) -> bool:
        return self._running

    async def _run_stale_reviews(self):
        async with await self._get_session() as session:
            acquired = await self._try_advisory_lock(session, LOCK_STALE_REVIEWS)
            if not acquired:
                logger.debug("[stale_reviews] Advisory lock not acquired, skipping tick")
                return None

            try:
                logger.info("[stale_reviews] LEADER, running watchdog")
                from reelflow.services.watchdog_service import run_watchdog

                result = await run_watchdog(session)
                logger.info("[stale_reviews] Completed: %d stale", result.get("stale_count", 0))
                return result
            finally:
                await self._release_advisory_lock(session, LOCK_STALE_REVIEWS)

    def get_jobs(self) -> list[dict]:
        jobs = []
        for job in self.scheduler.get_jobs():
            next_run = job.next_run_time
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": next_run.isoformat() if next_run else None,
                "trigger": str(job.trigger),
            })
        return jobs


scheduler_service = SchedulerService.get_instance()
