"""CronScheduler — one timer per enabled job, overlap-free triggering.

Each enabled job is armed with a one-shot APScheduler ``DateTrigger`` at its
next matching minute. When it fires the job runs to completion and is then
re-armed from a freshly loaded definition, so the next fire is the first
matching minute after the previous run finished rather than a fixed grid.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import TYPE_CHECKING

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from loguru import logger

from wavecron.core.cron.expression import next_run
from wavecron.core.cron.types import CronJob, CronJobRun

if TYPE_CHECKING:
    from wavecron.core.store import JobStore
    from wavecron.workflow.executor import WaveExecutor

SHUTDOWN_TIMEOUT_S = 10.0


class CronScheduler:
    """Arms, fires and re-arms cron jobs; at most one run per job in flight.

    All timer and in-flight state belongs to the instance. Surfaces that
    mutate jobs call ``handle_job_update`` / ``handle_job_delete`` afterwards.
    """

    def __init__(
        self,
        store: JobStore,
        executor: WaveExecutor,
        shutdown_timeout_s: float = SHUTDOWN_TIMEOUT_S,
    ):
        self.store = store
        self.executor = executor
        self.shutdown_timeout_s = shutdown_timeout_s
        self._scheduler = AsyncIOScheduler(
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": None}
        )
        self._timers: dict[str, datetime] = {}
        self._running: dict[str, asyncio.Task[CronJobRun]] = {}
        self._shutting_down = False

    # ── Lifecycle ─────────────────────────────────────────────

    async def start(self) -> None:
        """Load all jobs, arm the enabled ones and start the timer engine."""
        self._shutting_down = False
        jobs = self.store.load_all()
        for job in jobs:
            if job.enabled:
                self.arm(job)
        if not self._scheduler.running:
            self._scheduler.start()
        enabled = sum(1 for j in jobs if j.enabled)
        logger.info(f"CronScheduler started with {len(jobs)} jobs ({enabled} enabled)")

    async def shutdown(self) -> None:
        """Stop arming, drop all timers, wait (bounded) for in-flight runs."""
        logger.info("CronScheduler shutting down...")
        self._shutting_down = True

        for job_id in list(self._timers):
            self.unarm(job_id)
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)

        if self._running:
            logger.info(f"Waiting for {len(self._running)} running jobs...")
            _, pending = await asyncio.wait(
                list(self._running.values()), timeout=self.shutdown_timeout_s
            )
            if pending:
                logger.warning(
                    f"{len(pending)} job(s) still running after "
                    f"{self.shutdown_timeout_s:g}s, not waiting"
                )
        logger.info("CronScheduler stopped")

    # ── Timers ────────────────────────────────────────────────

    def arm(self, job: CronJob) -> datetime | None:
        """Schedule the job's next fire. Returns the fire time, or None if unarmed."""
        if self._shutting_down or not job.enabled:
            return None

        self.unarm(job.id)

        fire_at = next_run(job.schedule)
        if fire_at is None:
            logger.warning(f"Invalid cron expression for job {job.id}: {job.schedule}")
            return None

        delay = (fire_at - datetime.now()).total_seconds()
        if delay <= 0:
            return None

        self._scheduler.add_job(
            self._fire,
            trigger=DateTrigger(run_date=fire_at),
            id=job.id,
            args=[job.id],
            replace_existing=True,
        )
        self._timers[job.id] = fire_at
        logger.info(
            f"Scheduling job '{job.name}' ({job.id}), next run: "
            f"{fire_at.isoformat()} (in {round(delay)}s)"
        )
        return fire_at

    def unarm(self, job_id: str) -> None:
        """Clear the pending timer for a job, if any."""
        if self._timers.pop(job_id, None) is None:
            return
        try:
            self._scheduler.remove_job(job_id)
        except JobLookupError:
            pass  # already fired

    async def _fire(self, job_id: str) -> None:
        self._timers.pop(job_id, None)
        await self.trigger(job_id)

        fresh = self.store.load(job_id)
        if fresh is not None and fresh.enabled:
            self.arm(fresh)

    # ── Execution ─────────────────────────────────────────────

    async def trigger(self, job_id: str, force: bool = False) -> CronJobRun | None:
        """Run the job now unless a run for it is already in flight.

        Disabled jobs are skipped unless ``force`` is set. Returns the
        finished run, or None when nothing ran.
        """
        if job_id in self._running:
            logger.debug(f"Job {job_id} is already running, skipping")
            return None

        job = self.store.load(job_id)
        if job is None or (not job.enabled and not force):
            return None

        logger.info(f"Triggering job '{job.name}' ({job_id})")
        task = asyncio.create_task(self.executor.run(job))
        self._running[job_id] = task
        try:
            return await task
        except Exception as e:
            logger.error(f"Job '{job.name}' ({job_id}) crashed: {e}")
            return None
        finally:
            self._running.pop(job_id, None)

    async def run_now(self, job_id: str) -> CronJobRun | None:
        """Manual trigger; runs disabled jobs too."""
        return await self.trigger(job_id, force=True)

    # ── Store change signals ──────────────────────────────────

    def handle_job_update(self, job_id: str) -> None:
        """Re-read a job after a create/update and arm or unarm it."""
        job = self.store.load(job_id)
        if job is not None and job.enabled:
            self.arm(job)
        else:
            self.unarm(job_id)

    def handle_job_delete(self, job_id: str) -> None:
        self.unarm(job_id)

    # ── Introspection ─────────────────────────────────────────

    def next_run_at(self, job_id: str) -> datetime | None:
        return self._timers.get(job_id)

    def armed_jobs(self) -> dict[str, datetime]:
        return dict(self._timers)

    def running_jobs(self) -> list[str]:
        return list(self._running)

    def is_running(self, job_id: str) -> bool:
        return job_id in self._running
