"""
Abstract base classes for chunk sources (readers) and sinks (writers)
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List
from schemas.person import PersonRecord


class ItemReader(ABC):
    """
    Abstract base class for all sources.

    Responsibilities:
    - Yield raw rows lazily, in source order
    - Decode one raw row into a typed record

    A reader is finite and restartable from position 0 only; there is no
    mid-stream resume.
    """

    name: str = "reader"

    async def open(self) -> None:
        """Acquire resources. Raise SourceReadError if the source is unavailable."""

    async def close(self) -> None:
        """Release resources; must be safe to call after a failed open"""

    @abstractmethod
    def rows(self) -> AsyncIterator[Dict[str, Any]]:
        """
        Iterate raw rows.

        Returns:
            Async iterator of raw row dictionaries
        """
        pass

    @abstractmethod
    def decode(self, raw: Dict[str, Any], position: int) -> PersonRecord:
        """Decode a raw row; raises DecodeError"""
        pass


class UnitOfWork:
    """Buffer of records written inside one atomic chunk"""

    def __init__(self):
        self.records: List[PersonRecord] = []

    def write(self, record: PersonRecord) -> None:
        self.records.append(record)

    def __len__(self) -> int:
        return len(self.records)


class ItemWriter(ABC):
    """
    Abstract base class for all sinks.

    Writes happen through ``unit_of_work()``: records written inside the
    block become visible together when the block exits cleanly, and none
    of them do if the block raises.
    """

    name: str = "writer"

    async def open(self) -> None:
        """Acquire resources (create files, etc.)"""

    async def close(self) -> None:
        """Release resources; must be safe to call after a failed open"""

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[UnitOfWork]:
        unit = UnitOfWork()
        yield unit
        # Reached only when the block did not raise
        await self.commit(unit.records)

    @abstractmethod
    async def commit(self, records: List[PersonRecord]) -> None:
        """
        Persist one chunk atomically.

        Raises:
            WriteError: nothing from this chunk is visible in the sink
        """
        pass
