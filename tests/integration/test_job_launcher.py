"""
End-to-end launcher tests: import and export through the ledger, runner and metrics
"""

import asyncio
import time
import pytest
from datetime import datetime, timedelta
from pathlib import Path
from sqlalchemy import delete, select
from batch.launcher import JobLauncher
from batch.registry import EXPORT_JOB, IMPORT_JOB, JobDefinition, JobRegistry
from models.base import RunStatus, TriggerOrigin
from models.job_execution import JobExecution
from models.person import Person
from schemas.batch import LaunchStatus
from schemas.person import PersonRecord
from tests.helpers import ListReader, ListWriter, fetch_persons, insert_persons, raw_person, write_person_csv

SUBMITTED_AT = datetime(2024, 1, 15, 10, 30, 0)


@pytest.fixture
def launcher(registry, ledger, metrics) -> JobLauncher:
    return JobLauncher(registry, ledger, metrics=metrics)


def sample(metrics, name, **labels):
    return metrics.registry.get_sample_value(name, labels)


async def execution_rows(db_session):
    result = await db_session.execute(select(JobExecution).order_by(JobExecution.id))
    return list(result.scalars().all())


class TestImportExport:
    """Import and export through the default registry"""

    @pytest.mark.asyncio
    async def test_import_then_export(self, launcher, test_settings, session_factory, mock_person_rows):
        write_person_csv(Path(test_settings.IMPORT_FILE_PATH), mock_person_rows)

        imported = await launcher.launch(IMPORT_JOB)

        assert imported.status == LaunchStatus.COMPLETED
        assert imported.message == "Import job completed successfully"
        assert imported.records_written == 3
        persons = await fetch_persons(session_factory)
        assert [p.first_name for p in persons] == ["JOHN", "AMY", "BO"]

        exported = await launcher.launch(EXPORT_JOB)

        assert exported.message == "Export job completed successfully"
        assert Path(test_settings.EXPORT_OUTPUT_PATH).read_text() == (
            "id,first_name,last_name,email,age\n"
            "1,JOHN,doe,j@x.com,30\n"
            "2,AMY,lee,a@x.com,25\n"
            "3,BO,kim,b@x.com,40\n"
        )

    @pytest.mark.asyncio
    async def test_export_of_empty_store(self, launcher, test_settings):
        result = await launcher.launch(EXPORT_JOB)

        assert result.status == LaunchStatus.COMPLETED
        assert Path(test_settings.EXPORT_OUTPUT_PATH).read_text() == "id,first_name,last_name,email,age\n"

    @pytest.mark.asyncio
    async def test_repeated_export_is_byte_identical(self, launcher, test_settings, session_factory):
        await insert_persons(session_factory, [
            PersonRecord(id=i, first_name=f"F{i}", last_name=f"l{i}", email=f"{i}@x.com", age=i)
            for i in (5, 1, 14, 3, 22, 8, 11, 2, 19, 7, 13, 4)
        ])
        output = Path(test_settings.EXPORT_OUTPUT_PATH)

        await launcher.launch(EXPORT_JOB, submitted_at=SUBMITTED_AT)
        first = output.read_bytes()
        await launcher.launch(EXPORT_JOB, submitted_at=SUBMITTED_AT + timedelta(seconds=1))

        assert output.read_bytes() == first
        assert first.decode().splitlines()[1].startswith("1,F1,")

    @pytest.mark.asyncio
    async def test_export_reimports_to_same_content(self, launcher, test_settings, session_factory, mock_person_rows):
        write_person_csv(Path(test_settings.IMPORT_FILE_PATH), mock_person_rows)
        await launcher.launch(IMPORT_JOB, submitted_at=SUBMITTED_AT)
        await launcher.launch(EXPORT_JOB, submitted_at=SUBMITTED_AT)
        before = [(p.id, p.first_name, p.last_name, p.email, p.age) for p in await fetch_persons(session_factory)]

        async with session_factory() as session:
            async with session.begin():
                await session.execute(delete(Person))

        Path(test_settings.IMPORT_FILE_PATH).write_bytes(Path(test_settings.EXPORT_OUTPUT_PATH).read_bytes())
        result = await launcher.launch(IMPORT_JOB, submitted_at=SUBMITTED_AT + timedelta(seconds=1))

        after = [(p.id, p.first_name, p.last_name, p.email, p.age) for p in await fetch_persons(session_factory)]
        assert result.status == LaunchStatus.COMPLETED
        # first names are already uppercase, so uppercasing again changes nothing
        assert after == before

    @pytest.mark.asyncio
    async def test_scheduled_export_writes_timestamped_file(self, launcher, test_settings, metrics):
        result = await launcher.launch(EXPORT_JOB, TriggerOrigin.SCHEDULED, submitted_at=SUBMITTED_AT)

        expected = Path(test_settings.SCHEDULED_EXPORT_DIR) / "scheduled_export_20240115_103000.csv"
        assert result.status == LaunchStatus.COMPLETED
        assert expected.read_text() == "id,first_name,last_name,email,age\n"
        assert not Path(test_settings.EXPORT_OUTPUT_PATH).exists()
        assert sample(metrics, "scheduled_batch_job_completed_total", job_name="export", status="success") == 1.0
        assert sample(metrics, "batch_job_started_total", job_name="export") is None


class TestFailures:
    """Failures surface as FAILED results and FAILED ledger entries"""

    @pytest.mark.asyncio
    async def test_bad_row_fails_import(self, launcher, test_settings, db_session, metrics):
        write_person_csv(Path(test_settings.IMPORT_FILE_PATH), ["1,john,doe,j@x.com,30", "2,amy,lee,a@x.com,old"])

        result = await launcher.launch(IMPORT_JOB)

        assert result.status == LaunchStatus.FAILED
        assert result.message.startswith("Import job failed: Row 2: age")
        rows = await execution_rows(db_session)
        assert rows[0].status == RunStatus.FAILED
        assert rows[0].failure_cause.startswith("Row 2: age")
        assert sample(metrics, "batch_job_completed_total", job_name="import", status="failure") == 1.0

    @pytest.mark.asyncio
    async def test_missing_import_file(self, launcher, test_settings):
        result = await launcher.launch(IMPORT_JOB)

        assert result.status == LaunchStatus.FAILED
        assert result.message == f"Import job failed: CSV file not found: {test_settings.IMPORT_FILE_PATH}"

    @pytest.mark.asyncio
    async def test_unknown_job(self, launcher, db_session, metrics):
        result = await launcher.launch("cleanup")

        assert result.status == LaunchStatus.FAILED
        assert result.message == "Job failed: Unknown job 'cleanup'"
        assert result.run_id is None
        assert await execution_rows(db_session) == []
        assert sample(metrics, "batch_job_started_total", job_name="cleanup") is None

    @pytest.mark.asyncio
    async def test_unexpected_runner_error(self, ledger, metrics, db_session):
        registry = JobRegistry()
        registry.register("demo", JobDefinition(
            "demo",
            reader_factory=lambda identity: ListReader([raw_person(1)]),
            writer_factory=lambda identity: ListWriter(fail_on_chunk=1, error=RuntimeError("boom")),
        ))
        launcher = JobLauncher(registry, ledger, metrics=metrics)

        result = await launcher.launch("demo")

        assert result.status == LaunchStatus.FAILED
        assert result.message == "Demo job failed: boom"
        rows = await execution_rows(db_session)
        assert rows[0].status == RunStatus.FAILED
        assert rows[0].failure_cause == "boom"


class TestAdmission:
    """Duplicate and concurrent submissions"""

    @pytest.mark.asyncio
    async def test_completed_identity_rejected(self, launcher, metrics):
        first = await launcher.launch(EXPORT_JOB, submitted_at=SUBMITTED_AT)
        second = await launcher.launch(EXPORT_JOB, submitted_at=SUBMITTED_AT)
        restarted = await launcher.launch(EXPORT_JOB, submitted_at=SUBMITTED_AT, restartable=True)

        assert first.status == LaunchStatus.COMPLETED
        assert second.status == LaunchStatus.REJECTED
        assert second.message.startswith("Export job rejected: ")
        assert second.run_id is None
        assert restarted.status == LaunchStatus.COMPLETED
        assert sample(metrics, "batch_job_completed_total", job_name="export", status="rejected") == 1.0
        assert sample(metrics, "batch_job_completed_total", job_name="export", status="success") == 2.0
        assert sample(metrics, "batch_jobs_active", job_name="export") == 0.0

    @pytest.mark.asyncio
    async def test_identical_submission_rejected_while_running(self, ledger, metrics):
        started = asyncio.Event()
        release = asyncio.Event()

        class BlockingReader(ListReader):
            async def open(self):
                started.set()
                await release.wait()

        readers = iter([BlockingReader([raw_person(1)])])
        writers = []

        def reader_factory(identity):
            return next(readers, None) or ListReader([raw_person(2)])

        def writer_factory(identity):
            writers.append(ListWriter())
            return writers[-1]

        registry = JobRegistry()
        registry.register("demo", JobDefinition("demo", reader_factory, writer_factory, chunk_size=1))
        launcher = JobLauncher(registry, ledger, metrics=metrics)

        first = asyncio.create_task(launcher.launch("demo", submitted_at=SUBMITTED_AT))
        await asyncio.wait_for(started.wait(), timeout=5)

        duplicate = await launcher.launch("demo", submitted_at=SUBMITTED_AT)
        later = await launcher.launch("demo", submitted_at=SUBMITTED_AT + timedelta(seconds=1))

        release.set()
        first_result = await asyncio.wait_for(first, timeout=5)

        assert duplicate.status == LaunchStatus.REJECTED
        assert "already running" in duplicate.message
        assert later.status == LaunchStatus.COMPLETED
        assert first_result.status == LaunchStatus.COMPLETED
        assert [record.id for record in writers[0].records] == [1]
        assert len(writers) == 2

    @pytest.mark.asyncio
    async def test_concurrent_identical_launches(self, launcher, ledger, db_session):
        results = await asyncio.gather(*(
            launcher.launch(EXPORT_JOB, submitted_at=SUBMITTED_AT) for _ in range(4)
        ))

        statuses = sorted(result.status.value for result in results)
        assert statuses.count("COMPLETED") == 1
        assert statuses.count("REJECTED") == 3
        assert len(await execution_rows(db_session)) == 1


@pytest.mark.asyncio
async def test_identity_parameters(registry, ledger):
    launcher = JobLauncher(registry, ledger)

    manual = launcher.build_identity(registry.resolve(EXPORT_JOB), TriggerOrigin.MANUAL, SUBMITTED_AT)
    scheduled = launcher.build_identity(registry.resolve(EXPORT_JOB), TriggerOrigin.SCHEDULED, SUBMITTED_AT)

    # 2024-01-15T10:30:00Z regardless of the host time zone
    assert manual.params["start_at"] == "1705314600000"
    assert manual.params["trigger"] == "manual"
    assert "output_path" not in manual.params
    assert scheduled.params["trigger"] == "scheduled"
    assert scheduled.params["output_path"].endswith("scheduled_export_20240115_103000.csv")
    assert manual.identity_key() != scheduled.identity_key()


@pytest.mark.skipif(not hasattr(time, "tzset"), reason="needs time.tzset")
@pytest.mark.asyncio
async def test_start_at_ignores_host_time_zone(registry, ledger, monkeypatch):
    launcher = JobLauncher(registry, ledger)
    monkeypatch.setenv("TZ", "America/New_York")
    time.tzset()
    try:
        identity = launcher.build_identity(registry.resolve(IMPORT_JOB), TriggerOrigin.MANUAL, SUBMITTED_AT)
    finally:
        monkeypatch.undo()
        time.tzset()

    assert identity.params["start_at"] == "1705314600000"
