"""
Scheduler Service

Optional in-process daily trigger for the viral cycle.

Single-leader election via Postgres advisory locks:
- Only the instance that acquires the lock executes the tick
- Other instances silently skip
- Controlled by SCHEDULER_ENABLED env (default: false, an external cron
  calling POST /api/viral-cycle/run is the primary trigger)
"""
from __future__ import annotations

import logging
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncSession, async_sessionmaker

from viral_studio.db import build_session_factory, get_session_factory
from viral_studio.services.post_schedule import resolve_timezone
from viral_studio.settings import get_settings

logger = logging.getLogger("scheduler")

# Advisory lock key (arbitrary int64, unique per job type)
LOCK_DAILY_VIRAL_CYCLE = 910_001

JOB_DAILY_VIRAL_CYCLE = "daily_viral_cycle"


class SchedulerService:
    """Runs the daily viral cycle on a cron trigger.

    Uses Postgres pg_try_advisory_lock on each tick so that only
    one backend instance (the leader) executes the job while
    other instances skip silently.
    """

    _instance: "SchedulerService | None" = None

    def __init__(self):
        self.scheduler = AsyncIOScheduler()
        self._session_factory: async_sessionmaker | None = None
        self._running = False

    @classmethod
    def get_instance(cls) -> "SchedulerService":
        """Get singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def configure(self, database_url: str):
        """Configure database connection."""
        self._session_factory = build_session_factory(database_url)

    def _get_session_factory(self) -> async_sessionmaker[AsyncSession]:
        if not self._session_factory:
            self._session_factory = get_session_factory()
        return self._session_factory

    def _get_engine(self) -> AsyncEngine:
        return self._get_session_factory().kw["bind"]

    @staticmethod
    def _supports_advisory_locks(conn: AsyncConnection) -> bool:
        return conn.dialect.name == "postgresql"

    async def _try_advisory_lock(self, conn: AsyncConnection, lock_key: int) -> bool:
        """Try to acquire a Postgres session-level advisory lock (non-blocking).

        The lock belongs to conn, which must stay checked out until
        _release_advisory_lock runs on it.
        """
        if not self._supports_advisory_locks(conn):
            return True
        result = await conn.execute(text(f"SELECT pg_try_advisory_lock({lock_key})"))
        return bool(result.scalar())

    async def _release_advisory_lock(self, conn: AsyncConnection, lock_key: int):
        if not self._supports_advisory_locks(conn):
            return
        await conn.execute(text(f"SELECT pg_advisory_unlock({lock_key})"))

    def register_jobs(self):
        settings = get_settings()
        self.scheduler.add_job(
            self._run_daily_viral_cycle,
            CronTrigger(
                hour=settings.viral_cycle_cron_hour,
                minute=settings.viral_cycle_cron_minute,
                timezone=resolve_timezone(settings.schedule_timezone)[0],
            ),
            id=JOB_DAILY_VIRAL_CYCLE,
            name="Daily viral cycle",
            replace_existing=True,
        )

    def start(self):
        """Start the scheduler (respects SCHEDULER_ENABLED env)."""
        settings = get_settings()
        if not settings.scheduler_enabled:
            logger.info("Scheduler DISABLED by SCHEDULER_ENABLED=false, skipping start")
            return

        if self._running:
            return

        self.register_jobs()
        self.scheduler.start()
        self._running = True
        logger.info("Scheduler started (single-leader mode via advisory locks)")

    def stop(self):
        """Stop the scheduler."""
        if not self._running:
            return
        self.scheduler.shutdown(wait=False)
        self._running = False
        logger.info("Scheduler stopped")

    def is_running(self) -> bool:
        return self._running

    async def _run_daily_viral_cycle(self) -> dict[str, Any] | None:
        """Protected by advisory lock: only one instance executes per tick."""
        from viral_studio.services.viral_cycle import run_daily_viral_cycle

        # The cycle commits once per pairing, so its session may hop between
        # pooled connections; the lock lives on its own connection instead.
        async with self._get_engine().connect() as lock_conn:
            acquired = await self._try_advisory_lock(lock_conn, LOCK_DAILY_VIRAL_CYCLE)
            if not acquired:
                logger.debug("[daily_viral_cycle] Advisory lock not acquired, another instance is leader")
                return None

            try:
                logger.info("[daily_viral_cycle] LEADER, running daily viral cycle")
                async with self._get_session_factory()() as session:
                    report = await run_daily_viral_cycle(session, get_settings())
                logger.info(
                    "[daily_viral_cycle] Completed: %d videos created, %d duplicates skipped",
                    report.videos_created,
                    report.duplicates_skipped,
                )
                return report.model_dump(mode="json")
            finally:
                await self._release_advisory_lock(lock_conn, LOCK_DAILY_VIRAL_CYCLE)

    def get_jobs(self) -> list[dict]:
        """Get list of all scheduled jobs."""
        jobs = []
        for job in self.scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": next_run.isoformat() if next_run else None,
                "trigger": str(job.trigger),
            })
        return jobs

    async def run_now(self, job_id: str) -> dict:
        """Run a job immediately."""
        job = self.scheduler.get_job(job_id)
        if not job:
            return {"error": f"Job {job_id} not found"}

        try:
            result = await job.func()
            return {"ok": True, "result": result}
        except Exception as e:
            logger.error("Failed to run job %s: %s", job_id, e)
            return {"error": str(e)}


# Global instance
scheduler_service = SchedulerService.get_instance()
