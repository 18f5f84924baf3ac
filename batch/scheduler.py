import asyncio
import logging
from typing import Dict, Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from batch.launcher import JobLauncher
from batch.ledger import RunLedger
from batch.registry import EXPORT_JOB, IMPORT_JOB
from core.exceptions import ConfigurationError
from models.base import TriggerOrigin
from schemas.batch import LaunchResult, LaunchStatus

logger = logging.getLogger(__name__)


class BatchScheduler:
    """
    Cron-driven trigger for registered jobs.

    ``schedules`` maps job name to a five-field crontab expression. Each
    firing calls the launcher with a scheduled run identity; a firing is
    skipped while an earlier firing of the same job is still launching
    or the ledger still shows a scheduled run of it as RUNNING. Nothing
    is queued or retried.
    """

    def __init__(
        self,
        launcher: JobLauncher,
        ledger: RunLedger,
        schedules: Dict[str, str],
        scheduler: Optional[AsyncIOScheduler] = None
    ):
        self.launcher = launcher
        self.ledger = ledger
        self.scheduler = scheduler or AsyncIOScheduler()
        self.triggers: Dict[str, CronTrigger] = {}
        self._firing_locks: Dict[str, asyncio.Lock] = {}

        for job_name, expression in schedules.items():
            launcher.registry.resolve(job_name)
            try:
                self.triggers[job_name] = CronTrigger.from_crontab(expression)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid cron expression for job '{job_name}': {expression}",
                    context={"job_name": job_name, "cron": expression},
                    original_exception=e
                )

    async def run_scheduled(self, job_name: str) -> Optional[LaunchResult]:
        """Job function: launch ``job_name`` as a scheduled run"""
        logger.info(f"Scheduler: starting job '{job_name}'")

        lock = self._firing_locks.setdefault(job_name, asyncio.Lock())
        if lock.locked():
            logger.info(f"Scheduler: job '{job_name}' still running from a previous firing, skipping")
            return None

        async with lock:
            if await self.ledger.has_running(job_name, TriggerOrigin.SCHEDULED):
                logger.info(f"Scheduler: job '{job_name}' still running from a previous firing, skipping")
                return None

            result = await self.launcher.launch(job_name, TriggerOrigin.SCHEDULED)

        if result.status == LaunchStatus.COMPLETED:
            logger.info(
                f"Scheduled {job_name} job completed successfully. Run ID: {result.run_id}"
            )
        elif result.status == LaunchStatus.REJECTED:
            logger.info(f"Scheduler: {result.message}")
        else:
            logger.error(f"Scheduled {job_name} job failed: {result.message}")
        return result

    async def run_import_job(self) -> Optional[LaunchResult]:
        return await self.run_scheduled(IMPORT_JOB)

    async def run_export_job(self) -> Optional[LaunchResult]:
        return await self.run_scheduled(EXPORT_JOB)

    async def _fire(self, job_name: str) -> None:
        try:
            await self.run_scheduled(job_name)
        except Exception as e:
            logger.error(f"Scheduler: job '{job_name}' failed - {e}")

    def start(self):
        """Start the scheduler"""
        for job_name, trigger in self.triggers.items():
            self.scheduler.add_job(
                self._fire,
                trigger=trigger,
                args=[job_name],
                id=f"{job_name}_job",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
        self.scheduler.start()
        logger.info(f"Batch scheduler started for jobs: {', '.join(self.triggers) or 'none'}")

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Batch scheduler stopped")
