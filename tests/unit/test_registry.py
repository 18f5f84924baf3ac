"""
Unit tests for job definitions, the registry and run identities
"""

import pytest
from datetime import datetime
from unittest.mock import MagicMock
from batch.processors.person_processor import passthrough, uppercase_first_name
from batch.readers.csv_reader import CSVFileReader
from batch.readers.db_reader import PersonTableReader
from batch.registry import (
    EXPORT_JOB,
    IMPORT_JOB,
    JobDefinition,
    JobRegistry,
    build_default_registry,
    scheduled_export_path,
)
from batch.writers.csv_writer import CSVFileWriter
from batch.writers.db_writer import PersonTableWriter
from core.exceptions import ConfigurationError, JobNotFoundError
from models.base import TriggerOrigin
from schemas.batch import RunIdentity


def make_job(name: str = "demo", chunk_size=10) -> JobDefinition:
    return JobDefinition(
        name=name,
        reader_factory=MagicMock(),
        writer_factory=MagicMock(),
        chunk_size=chunk_size,
    )


class TestJobDefinition:
    """Test job definition validation"""

    @pytest.mark.parametrize("chunk_size", [0, -1, "10", 2.5, True])
    def test_rejects_invalid_chunk_size(self, chunk_size):
        with pytest.raises(ConfigurationError, match="Chunk size must be a positive integer"):
            make_job(chunk_size=chunk_size)

    def test_defaults(self):
        job = make_job("import")

        assert job.display_name == "Import"
        assert job.processor is passthrough
        assert job.identity_parameters(TriggerOrigin.SCHEDULED, datetime(2024, 1, 1)) == {}

    def test_is_immutable(self):
        job = make_job()

        with pytest.raises(AttributeError):
            job.chunk_size = 5
        assert job.chunk_size == 10


class TestJobRegistry:
    """Test registration and resolution"""

    def test_register_and_resolve(self):
        registry = JobRegistry()
        job = make_job("demo")

        registry.register("demo", job)

        assert registry.resolve("demo") is job
        assert registry.names() == ["demo"]

    def test_duplicate_name(self):
        registry = JobRegistry()
        registry.register("demo", make_job("demo"))

        with pytest.raises(ConfigurationError, match="already registered"):
            registry.register("demo", make_job("demo"))

    def test_sealed_registry(self):
        registry = JobRegistry()
        registry.seal()

        assert registry.sealed
        with pytest.raises(ConfigurationError, match="sealed"):
            registry.register("demo", make_job("demo"))

    def test_unknown_job(self):
        registry = JobRegistry()
        registry.register("demo", make_job("demo"))

        with pytest.raises(JobNotFoundError) as exc_info:
            registry.resolve("nope")

        assert exc_info.value.message == "Unknown job 'nope'"
        assert exc_info.value.context["known_jobs"] == ["demo"]
        assert isinstance(exc_info.value, ConfigurationError)


class TestDefaultRegistry:
    """Test the built-in import and export jobs"""

    def test_registers_import_and_export(self, test_settings):
        registry = build_default_registry(test_settings, MagicMock())

        assert registry.names() == [EXPORT_JOB, IMPORT_JOB]
        assert registry.sealed

    def test_import_job_wiring(self, test_settings):
        registry = build_default_registry(test_settings, MagicMock())
        job = registry.resolve(IMPORT_JOB)
        identity = RunIdentity(job_name=IMPORT_JOB, submitted_at=datetime(2024, 1, 1))

        reader = job.reader_factory(identity)
        writer = job.writer_factory(identity)

        assert isinstance(reader, CSVFileReader)
        assert str(reader.file_path) == test_settings.IMPORT_FILE_PATH
        assert isinstance(writer, PersonTableWriter)
        assert job.processor is uppercase_first_name
        assert job.chunk_size == test_settings.IMPORT_CHUNK_SIZE

    def test_export_job_wiring(self, test_settings):
        registry = build_default_registry(test_settings, MagicMock())
        job = registry.resolve(EXPORT_JOB)
        identity = RunIdentity(job_name=EXPORT_JOB, submitted_at=datetime(2024, 1, 1))

        reader = job.reader_factory(identity)
        writer = job.writer_factory(identity)

        assert isinstance(reader, PersonTableReader)
        assert isinstance(writer, CSVFileWriter)
        assert str(writer.file_path) == test_settings.EXPORT_OUTPUT_PATH
        assert job.processor is passthrough

    def test_scheduled_export_gets_timestamped_path(self, test_settings):
        registry = build_default_registry(test_settings, MagicMock())
        job = registry.resolve(EXPORT_JOB)
        submitted_at = datetime(2024, 1, 15, 10, 30, 5)

        manual = job.identity_parameters(TriggerOrigin.MANUAL, submitted_at)
        scheduled = job.identity_parameters(TriggerOrigin.SCHEDULED, submitted_at)

        assert manual == {}
        assert scheduled["output_path"].endswith("scheduled_export_20240115_103005.csv")

        identity = RunIdentity(
            job_name=EXPORT_JOB,
            trigger=TriggerOrigin.SCHEDULED,
            submitted_at=submitted_at,
            params=scheduled,
        )
        assert str(job.writer_factory(identity).file_path) == scheduled["output_path"]

    def test_scheduled_export_path_format(self):
        path = scheduled_export_path("output/", datetime(2024, 3, 9, 7, 5, 1))

        assert path == "output/scheduled_export_20240309_070501.csv"


class TestRunIdentity:
    """Test identity keys used for admission"""

    def test_same_parameters_same_key(self):
        a = RunIdentity(job_name="import", submitted_at=datetime(2024, 1, 1), params={"start_at": "1", "trigger": "manual"})
        b = RunIdentity(job_name="import", submitted_at=datetime(2024, 2, 1), params={"trigger": "manual", "start_at": "1"})

        assert a.identity_key() == b.identity_key()

    def test_restartable_is_not_part_of_identity(self):
        a = RunIdentity(job_name="import", submitted_at=datetime(2024, 1, 1), params={"start_at": "1"})
        b = RunIdentity(job_name="import", submitted_at=datetime(2024, 1, 1), params={"start_at": "1"}, restartable=True)

        assert a.identity_key() == b.identity_key()

    def test_different_parameters_or_job(self):
        base = RunIdentity(job_name="import", submitted_at=datetime(2024, 1, 1), params={"start_at": "1"})
        other_time = RunIdentity(job_name="import", submitted_at=datetime(2024, 1, 1), params={"start_at": "2"})
        other_job = RunIdentity(job_name="export", submitted_at=datetime(2024, 1, 1), params={"start_at": "1"})

        assert base.identity_key() != other_time.identity_key()
        assert base.identity_key() != other_job.identity_key()
