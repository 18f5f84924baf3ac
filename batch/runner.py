# ============================================================================
# File: batch/runner.py
# Description: Chunk-oriented read / process / write engine
# ============================================================================
"""
Chunk Runner - drives one job run as a sequence of atomic chunks.

This module provides the read → process → write loop with:
- Fixed-size chunks, processed strictly in source order
- One unit of work per chunk (all rows of a chunk or none)
- Fail-fast semantics: the first bad row, processor error or write
  failure ends the run FAILED; chunks committed before it stay committed
- Accurate read / write / chunk counts for the run ledger
"""

from typing import Any, AsyncIterator, Dict, List
import logging

from batch.base import ItemReader, ItemWriter
from batch.registry import JobDefinition
from core.exceptions import (
    ConfigurationError,
    PipelineError,
    TransformationError,
)
from models.base import RunStatus
from schemas.batch import RunIdentity, RunOutcome
from schemas.person import PersonRecord

logger = logging.getLogger(__name__)


class ChunkRunner:
    """
    Chunked pipeline engine.

    Responsibilities:
    - Validate the job's chunk size before any I/O
    - Pull up to ``chunk_size`` raw rows, decode and process them
    - Write each chunk inside one unit of work
    - Turn pipeline errors into a FAILED outcome with the triggering cause

    Exceptions that are not PipelineError subclasses propagate to the
    caller (the launcher maps them to FAILED).
    """

    async def run(self, job: JobDefinition, identity: RunIdentity) -> RunOutcome:
        """
        Run a job to its terminal status.

        Args:
            job: Resolved job definition
            identity: Run identity (parameters for reader/writer factories)

        Returns:
            RunOutcome with COMPLETED or FAILED, cause and counts

        Raises:
            ConfigurationError: chunk size is not a positive integer
        """
        chunk_size = job.chunk_size
        if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size <= 0:
            raise ConfigurationError(
                f"Chunk size must be a positive integer, got {chunk_size!r}",
                context={"job_name": job.name, "chunk_size": chunk_size}
            )

        records_read = 0
        records_written = 0
        chunks_committed = 0

        reader: ItemReader = job.reader_factory(identity)
        writer: ItemWriter = job.writer_factory(identity)
        rows = None

        logger.info(
            f"Starting job '{job.name}' ({reader.name} -> {writer.name}, "
            f"chunk size {chunk_size})"
        )

        try:
            await reader.open()
            await writer.open()

            rows = reader.rows()
            while True:
                raw_chunk = await self._pull(rows, chunk_size)
                if not raw_chunk:
                    break

                first_position = records_read + 1
                records_read += len(raw_chunk)

                # Decode the whole chunk before anything is written
                records = [
                    reader.decode(raw, first_position + offset)
                    for offset, raw in enumerate(raw_chunk)
                ]
                processed = self._process(job, records, first_position)

                async with writer.unit_of_work() as unit:
                    for record in processed:
                        unit.write(record)

                records_written += len(processed)
                chunks_committed += 1
                logger.debug(
                    f"Job '{job.name}': committed chunk {chunks_committed} "
                    f"({len(processed)} records, {records_written} total)"
                )

        except PipelineError as e:
            logger.error(
                f"Job '{job.name}' failed after {chunks_committed} committed chunks: {e.message}",
                extra={"error_context": e.to_dict()}
            )
            return RunOutcome(
                status=RunStatus.FAILED,
                cause=e.message,
                records_read=records_read,
                records_written=records_written,
                chunks_committed=chunks_committed,
            )

        finally:
            await self._close(reader, writer, rows)

        logger.info(
            f"Job '{job.name}' completed: read={records_read}, "
            f"written={records_written}, chunks={chunks_committed}"
        )
        return RunOutcome(
            status=RunStatus.COMPLETED,
            records_read=records_read,
            records_written=records_written,
            chunks_committed=chunks_committed,
        )

    @staticmethod
    async def _pull(rows: AsyncIterator[Dict[str, Any]], limit: int) -> List[Dict[str, Any]]:
        chunk = []
        while len(chunk) < limit:
            try:
                chunk.append(await rows.__anext__())
            except StopAsyncIteration:
                break
        return chunk

    @staticmethod
    def _process(job: JobDefinition, records: List[PersonRecord], first_position: int) -> List[PersonRecord]:
        processed = []
        for offset, record in enumerate(records):
            try:
                processed.append(job.processor(record))
            except Exception as e:
                raise TransformationError(
                    f"Row {first_position + offset}: processor failed: {e}",
                    context={"job_name": job.name, "position": first_position + offset},
                    original_exception=e
                )
        return processed

    @staticmethod
    async def _close(reader: ItemReader, writer: ItemWriter, rows) -> None:
        aclose = getattr(rows, "aclose", None)
        if aclose is not None:
            try:
                await aclose()
            except Exception:
                logger.exception(f"Failed to close {reader.name} row iterator")
        for resource in (reader, writer):
            try:
                await resource.close()
            except Exception:
                logger.exception(f"Failed to close {resource.name}")
