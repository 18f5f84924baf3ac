"""
Job definitions and the process-lifetime job registry
"""

from datetime import datetime
from typing import Callable, Dict, List, Optional
from sqlalchemy.ext.asyncio import async_sessionmaker

from batch.base import ItemReader, ItemWriter
from batch.codec import PersonCodec
from batch.processors.person_processor import passthrough, uppercase_first_name
from batch.readers.csv_reader import CSVFileReader
from batch.readers.db_reader import PersonTableReader
from batch.writers.csv_writer import CSVFileWriter
from batch.writers.db_writer import PersonTableWriter
from core.config import Settings
from core.exceptions import ConfigurationError, JobNotFoundError
from models.base import TriggerOrigin
from schemas.batch import RunIdentity
from schemas.person import PersonRecord
import logging

logger = logging.getLogger(__name__)

IMPORT_JOB = "import"
EXPORT_JOB = "export"

ReaderFactory = Callable[[RunIdentity], ItemReader]
WriterFactory = Callable[[RunIdentity], ItemWriter]
Processor = Callable[[PersonRecord], PersonRecord]
ParameterBuilder = Callable[[TriggerOrigin, datetime], Dict[str, str]]


def _no_extra_parameters(trigger: TriggerOrigin, submitted_at: datetime) -> Dict[str, str]:
    return {}


class JobDefinition:
    """
    Pipeline configuration for one named job.

    Readers and writers are built per run from the run identity, so
    per-run settings such as the export file name travel as plain
    parameters instead of per-run objects.
    """

    __slots__ = (
        "name", "display_name", "reader_factory", "writer_factory",
        "processor", "chunk_size", "identity_parameters",
    )

    def __init__(
        self,
        name: str,
        reader_factory: ReaderFactory,
        writer_factory: WriterFactory,
        processor: Processor = passthrough,
        chunk_size: int = 10,
        display_name: Optional[str] = None,
        identity_parameters: ParameterBuilder = _no_extra_parameters
    ):
        if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size <= 0:
            raise ConfigurationError(
                f"Chunk size must be a positive integer, got {chunk_size!r}",
                context={"job_name": name, "chunk_size": chunk_size}
            )

        set_ = object.__setattr__
        set_(self, "name", name)
        set_(self, "display_name", display_name or name.capitalize())
        set_(self, "reader_factory", reader_factory)
        set_(self, "writer_factory", writer_factory)
        set_(self, "processor", processor)
        set_(self, "chunk_size", chunk_size)
        set_(self, "identity_parameters", identity_parameters)

    def __setattr__(self, key, value):
        raise AttributeError(f"JobDefinition '{self.name}' is immutable")

    def __repr__(self) -> str:
        return f"JobDefinition(name={self.name!r}, chunk_size={self.chunk_size})"


class JobRegistry:
    """
    Maps job names to definitions.

    Registration happens once at startup; ``seal()`` ends it.
    """

    def __init__(self):
        self._jobs: Dict[str, JobDefinition] = {}
        self._sealed = False

    def register(self, name: str, job: JobDefinition) -> None:
        if self._sealed:
            raise ConfigurationError(
                f"Cannot register job '{name}': registry is sealed",
                context={"job_name": name}
            )
        if name in self._jobs:
            raise ConfigurationError(
                f"Job '{name}' is already registered",
                context={"job_name": name}
            )
        self._jobs[name] = job
        logger.info(f"Registered job '{name}' (chunk size {job.chunk_size})")

    def resolve(self, name: str) -> JobDefinition:
        try:
            return self._jobs[name]
        except KeyError:
            raise JobNotFoundError(
                f"Unknown job '{name}'",
                context={"job_name": name, "known_jobs": sorted(self._jobs)}
            ) from None

    def names(self) -> List[str]:
        return sorted(self._jobs)

    def seal(self) -> None:
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed


def scheduled_export_path(directory: str, submitted_at: datetime) -> str:
    """output/scheduled_export_<YYYYMMDD_HHmmss>.csv"""
    return f"{directory.rstrip('/')}/scheduled_export_{submitted_at:%Y%m%d_%H%M%S}.csv"


def build_default_registry(settings: Settings, session_factory: async_sessionmaker) -> JobRegistry:
    """Register the built-in import and export jobs and seal the registry"""
    codec = PersonCodec()

    def export_parameters(trigger: TriggerOrigin, submitted_at: datetime) -> Dict[str, str]:
        if trigger == TriggerOrigin.SCHEDULED:
            return {"output_path": scheduled_export_path(settings.SCHEDULED_EXPORT_DIR, submitted_at)}
        return {}

    registry = JobRegistry()

    registry.register(IMPORT_JOB, JobDefinition(
        name=IMPORT_JOB,
        display_name="Import",
        reader_factory=lambda identity: CSVFileReader(
            settings.IMPORT_FILE_PATH, codec, buffer_rows=settings.IMPORT_CHUNK_SIZE
        ),
        writer_factory=lambda identity: PersonTableWriter(session_factory, codec),
        processor=uppercase_first_name,
        chunk_size=settings.IMPORT_CHUNK_SIZE,
    ))

    registry.register(EXPORT_JOB, JobDefinition(
        name=EXPORT_JOB,
        display_name="Export",
        reader_factory=lambda identity: PersonTableReader(
            session_factory, codec, page_size=max(settings.EXPORT_CHUNK_SIZE, 1)
        ),
        writer_factory=lambda identity: CSVFileWriter(
            identity.params.get("output_path", settings.EXPORT_OUTPUT_PATH), codec
        ),
        processor=passthrough,
        chunk_size=settings.EXPORT_CHUNK_SIZE,
        identity_parameters=export_parameters,
    ))

    registry.seal()
    return registry
