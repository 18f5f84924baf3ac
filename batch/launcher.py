"""
Job launcher: resolve, admit, run, record, report
"""

from datetime import datetime
from typing import Optional
import calendar
import logging
import time

from batch.ledger import RunLedger
from batch.metrics import BatchMetrics, STATUS_FAILURE, STATUS_REJECTED, STATUS_SUCCESS
from batch.registry import JobDefinition, JobRegistry
from batch.runner import ChunkRunner
from core.exceptions import AdmissionError, BatchJobError, JobNotFoundError
from models.base import RunStatus, TriggerOrigin
from schemas.batch import LaunchResult, LaunchStatus, RunIdentity, RunOutcome

logger = logging.getLogger(__name__)


class JobLauncher:
    """
    Entry point shared by the API and the scheduler.

    Flow:
    1. Resolve the job definition
    2. Build the run identity (start_at, trigger, job-specific parameters)
    3. Admit it through the run ledger (rejections end here)
    4. Run the chunked pipeline
    5. Record the terminal status in the ledger
    6. Emit metrics and return a LaunchResult

    ``launch`` never raises: every failure becomes a FAILED or REJECTED
    result with a human-readable message.
    """

    def __init__(
        self,
        registry: JobRegistry,
        ledger: RunLedger,
        runner: ChunkRunner = None,
        metrics: BatchMetrics = None
    ):
        self.registry = registry
        self.ledger = ledger
        self.runner = runner or ChunkRunner()
        self.metrics = metrics or BatchMetrics()

    def build_identity(
        self,
        job: JobDefinition,
        trigger: TriggerOrigin,
        submitted_at: Optional[datetime] = None,
        restartable: bool = False
    ) -> RunIdentity:
        submitted_at = submitted_at or datetime.utcnow()
        params = {
            "start_at": str(self._epoch_millis(submitted_at)),
            "trigger": trigger.value,
        }
        params.update(job.identity_parameters(trigger, submitted_at))
        return RunIdentity(
            job_name=job.name,
            trigger=trigger,
            submitted_at=submitted_at,
            params=params,
            restartable=restartable,
        )

    async def launch(
        self,
        job_name: str,
        trigger: TriggerOrigin = TriggerOrigin.MANUAL,
        submitted_at: Optional[datetime] = None,
        restartable: bool = False
    ) -> LaunchResult:
        try:
            job = self.registry.resolve(job_name)
        except JobNotFoundError as e:
            logger.error(e.message, extra={"error_context": e.to_dict()})
            return LaunchResult(
                status=LaunchStatus.FAILED,
                message=f"Job failed: {e.message}",
                job_name=job_name,
            )

        identity = self.build_identity(job, trigger, submitted_at, restartable)

        self.metrics.on_start(job.name, trigger)
        started = time.perf_counter()

        try:
            record = await self.ledger.admit(identity)
        except AdmissionError as e:
            self.metrics.on_terminal(job.name, trigger, STATUS_REJECTED, time.perf_counter() - started)
            return LaunchResult(
                status=LaunchStatus.REJECTED,
                message=f"{job.display_name} job rejected: {e.message}",
                job_name=job.name,
            )
        except Exception as e:
            logger.exception(f"Admission failed for job '{job.name}'")
            self.metrics.on_terminal(job.name, trigger, STATUS_FAILURE, time.perf_counter() - started)
            return LaunchResult(
                status=LaunchStatus.FAILED,
                message=f"{job.display_name} job failed: {self._cause(e)}",
                job_name=job.name,
            )

        try:
            outcome = await self.runner.run(job, identity)
        except Exception as e:
            logger.exception(f"Unexpected error while running job '{job.name}'")
            outcome = RunOutcome(status=RunStatus.FAILED, cause=self._cause(e))

        try:
            await self.ledger.complete(record, outcome)
        except Exception:
            # The run itself is over; a stuck RUNNING row is reconciled at next startup
            logger.exception(f"Failed to record terminal status for run {record.run_id}")

        duration = time.perf_counter() - started
        if outcome.succeeded:
            self.metrics.on_terminal(job.name, trigger, STATUS_SUCCESS, duration)
            message = f"{job.display_name} job completed successfully"
            status = LaunchStatus.COMPLETED
        else:
            self.metrics.on_terminal(job.name, trigger, STATUS_FAILURE, duration)
            message = f"{job.display_name} job failed: {outcome.cause}"
            status = LaunchStatus.FAILED

        return LaunchResult(
            status=status,
            message=message,
            job_name=job.name,
            run_id=record.run_id,
            records_written=outcome.records_written,
        )

    @staticmethod
    def _epoch_millis(submitted_at: datetime) -> int:
        """Milliseconds since the epoch; naive datetimes are taken as UTC"""
        seconds = calendar.timegm(submitted_at.utctimetuple())
        return seconds * 1000 + submitted_at.microsecond // 1000

    @staticmethod
    def _cause(error: Exception) -> str:
        if isinstance(error, BatchJobError):
            return error.message
        return str(error) or type(error).__name__
