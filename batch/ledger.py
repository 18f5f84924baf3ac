"""
Run ledger: durable job instances / executions and the admission gate
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker
import logging

from core.exceptions import AlreadyCompletedError, AlreadyRunningError, LedgerError
from models.base import RunStatus, TriggerOrigin
from models.job_execution import JobExecution
from models.job_instance import JobInstance
from schemas.batch import RunIdentity, RunOutcome, RunRecord

logger = logging.getLogger(__name__)

ABANDONED_CAUSE = "abandoned: process terminated before the run completed"


class RunLedger:
    """
    Durable record of job instances and executions.

    State machine per run identity:
        (no record) -> RUNNING -> COMPLETED | FAILED

    Admission is a compare-and-set on the instance row: a new identity
    is inserted RUNNING (the unique identity key rejects a concurrent
    insert); an existing one is flipped back to RUNNING only from FAILED,
    or from COMPLETED when the submission is restartable. Within this
    process admissions are also serialised by a lock held just for the
    admission transaction, never for the run itself.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory
        self._admission_lock = asyncio.Lock()

    async def admit(self, identity: RunIdentity) -> RunRecord:
        """
        Admit a run identity and open an execution for it.

        Returns:
            RunRecord in RUNNING state

        Raises:
            AlreadyRunningError: the identity has a RUNNING execution
            AlreadyCompletedError: the identity COMPLETED and is not restartable
        """
        key = identity.identity_key()

        async with self._admission_lock:
            async with self.session_factory() as session:
                instance_id = await self._insert_instance(session, identity, key)

                if instance_id is None:
                    instance_id = await self._claim_instance(session, identity, key)

                now = datetime.utcnow()
                execution = JobExecution(
                    instance_id=instance_id,
                    job_name=identity.job_name,
                    trigger=identity.trigger,
                    status=RunStatus.RUNNING,
                    started_at=now,
                )
                session.add(execution)
                await session.commit()

        logger.info(
            f"Admitted job '{identity.job_name}' ({identity.trigger.value}) "
            f"run_id={execution.run_id}"
        )
        return RunRecord(
            execution_id=execution.id,
            instance_id=instance_id,
            run_id=execution.run_id,
            identity=identity,
            status=RunStatus.RUNNING,
            started_at=now,
        )

    async def _insert_instance(self, session, identity: RunIdentity, key: str) -> Optional[int]:
        instance = JobInstance(
            identity_key=key,
            job_name=identity.job_name,
            trigger=identity.trigger,
            parameters=dict(identity.params),
            status=RunStatus.RUNNING,
            restartable=identity.restartable,
        )
        session.add(instance)
        try:
            await session.flush()
        except IntegrityError:
            await session.rollback()
            return None
        return instance.id

    async def _claim_instance(self, session, identity: RunIdentity, key: str) -> int:
        claimable = [JobInstance.status == RunStatus.FAILED]
        if identity.restartable:
            claimable.append(JobInstance.status == RunStatus.COMPLETED)

        result = await session.execute(
            update(JobInstance)
            .where(JobInstance.identity_key == key, or_(*claimable))
            .values(
                status=RunStatus.RUNNING,
                restartable=identity.restartable,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            instance = await session.execute(
                select(JobInstance.id).where(JobInstance.identity_key == key)
            )
            return instance.scalar_one()

        await session.rollback()
        current = await session.execute(
            select(JobInstance.status).where(JobInstance.identity_key == key)
        )
        status = current.scalar_one_or_none()
        context = {"job_name": identity.job_name, "params": dict(identity.params)}

        if status == RunStatus.COMPLETED:
            logger.warning(f"Rejected job '{identity.job_name}': identity already completed")
            raise AlreadyCompletedError(
                f"A run of job '{identity.job_name}' with these parameters already completed",
                context=context
            )

        logger.warning(f"Rejected job '{identity.job_name}': identity already running")
        raise AlreadyRunningError(
            f"A run of job '{identity.job_name}' with these parameters is already running",
            context=context
        )

    async def complete(self, record: RunRecord, outcome: RunOutcome) -> RunRecord:
        """
        Record the terminal status of an admitted execution.

        Raises:
            LedgerError: outcome is not terminal, or the execution is no
                longer RUNNING (already completed)
        """
        if outcome.status == RunStatus.RUNNING:
            raise LedgerError(
                "Cannot complete a run with status RUNNING",
                context={"run_id": str(record.run_id)}
            )

        ended_at = datetime.utcnow()
        duration = (ended_at - record.started_at).total_seconds()

        async with self.session_factory() as session:
            result = await session.execute(
                update(JobExecution)
                .where(
                    JobExecution.id == record.execution_id,
                    JobExecution.status == RunStatus.RUNNING,
                )
                .values(
                    status=outcome.status,
                    ended_at=ended_at,
                    duration_seconds=duration,
                    records_read=outcome.records_read,
                    records_written=outcome.records_written,
                    chunks_committed=outcome.chunks_committed,
                    failure_cause=outcome.cause,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                await session.rollback()
                raise LedgerError(
                    f"Execution {record.run_id} is not RUNNING",
                    context={"run_id": str(record.run_id), "job_name": record.identity.job_name}
                )

            await session.execute(
                update(JobInstance)
                .where(JobInstance.id == record.instance_id)
                .values(status=outcome.status, updated_at=ended_at)
                .execution_options(synchronize_session=False)
            )
            await session.commit()

        logger.info(
            f"Recorded {outcome.status.value} for job '{record.identity.job_name}' "
            f"run_id={record.run_id} ({duration:.3f}s)"
        )
        return record.model_copy(update={
            "status": outcome.status,
            "ended_at": ended_at,
            "failure_cause": outcome.cause,
        })

    async def reconcile_abandoned(self) -> int:
        """
        Mark executions left RUNNING by a terminated process as FAILED.

        Call once at startup, before any launch. Returns the number of
        executions reconciled.
        """
        now = datetime.utcnow()
        async with self.session_factory() as session:
            result = await session.execute(
                update(JobExecution)
                .where(JobExecution.status == RunStatus.RUNNING)
                .values(status=RunStatus.FAILED, ended_at=now, failure_cause=ABANDONED_CAUSE)
                .execution_options(synchronize_session=False)
            )
            await session.execute(
                update(JobInstance)
                .where(JobInstance.status == RunStatus.RUNNING)
                .values(status=RunStatus.FAILED, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            count = result.rowcount or 0

        if count:
            logger.warning(f"Reconciled {count} abandoned RUNNING executions as FAILED")
        return count

    async def has_running(self, job_name: str, trigger: Optional[TriggerOrigin] = None) -> bool:
        stmt = select(func.count()).select_from(JobExecution).where(
            JobExecution.job_name == job_name,
            JobExecution.status == RunStatus.RUNNING,
        )
        if trigger is not None:
            stmt = stmt.where(JobExecution.trigger == trigger)

        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return result.scalar() > 0

    async def recent_executions(self, limit: int = 10, job_name: Optional[str] = None) -> List[JobExecution]:
        stmt = select(JobExecution).order_by(JobExecution.started_at.desc(), JobExecution.id.desc()).limit(limit)
        if job_name:
            stmt = stmt.where(JobExecution.job_name == job_name)

        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def summary(self) -> Dict[str, Dict[str, Any]]:
        """Per-job execution counts by status plus the last start time"""
        stmt = (
            select(
                JobExecution.job_name,
                JobExecution.status,
                func.count(),
                func.max(JobExecution.started_at),
            )
            .group_by(JobExecution.job_name, JobExecution.status)
        )

        async with self.session_factory() as session:
            result = await session.execute(stmt)
            rows = result.all()

        summary: Dict[str, Dict[str, Any]] = {}
        for job_name, status, count, last_started in rows:
            entry = summary.setdefault(job_name, {
                "total_runs": 0,
                "running": 0,
                "completed": 0,
                "failed": 0,
                "last_started_at": None,
            })
            entry["total_runs"] += count
            entry[status.value.lower()] += count
            if last_started and (entry["last_started_at"] is None or last_started > entry["last_started_at"]):
                entry["last_started_at"] = last_started
        return summary
