"""
Shared test helpers: CSV builders, store access and in-memory readers/writers
"""

from pathlib import Path
from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from batch.base import ItemReader, ItemWriter
from batch.codec import PersonCodec
from models.person import Person
from schemas.person import PersonRecord

HEADER = "id,first_name,last_name,email,age"


def write_person_csv(path: Path, rows: List[str], header: str = HEADER) -> Path:
    """Write a person CSV file with the given data lines"""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join([header] + rows) + "\n", encoding="utf-8")
    return path


def person_lines(count: int, start: int = 1) -> List[str]:
    return [f"{i},first{i},last{i},p{i}@x.com,{20 + i}" for i in range(start, start + count)]


def raw_person(i: int, **overrides) -> dict:
    row = {
        "id": str(i),
        "first_name": f"first{i}",
        "last_name": f"last{i}",
        "email": f"p{i}@x.com",
        "age": str(20 + i),
    }
    row.update(overrides)
    return row


async def fetch_persons(session_factory: async_sessionmaker) -> List[Person]:
    async with session_factory() as session:
        result = await session.execute(select(Person).order_by(Person.id))
        return list(result.scalars().all())


async def insert_persons(session_factory: async_sessionmaker, records: List[PersonRecord]) -> None:
    codec = PersonCodec()
    async with session_factory() as session:
        async with session.begin():
            for record in records:
                session.add(Person(**codec.encode_db_row(record)))


class ListReader(ItemReader):
    """Yields prepared raw rows"""

    name = "list"

    def __init__(self, rows: List[dict], fail_open: Optional[Exception] = None):
        self._rows = rows
        self.fail_open = fail_open
        self.opened = False
        self.closed = False
        self.pulled = 0

    async def open(self) -> None:
        if self.fail_open is not None:
            raise self.fail_open
        self.opened = True

    async def close(self) -> None:
        self.closed = True

    def rows(self):
        return self._iterate()

    async def _iterate(self):
        for row in self._rows:
            self.pulled += 1
            yield row

    def decode(self, raw, position):
        return PersonCodec().decode_file_row(raw, position)


class ListWriter(ItemWriter):
    """Collects committed chunks; optionally fails on a given commit attempt"""

    name = "list"

    def __init__(self, fail_on_chunk: Optional[int] = None, error: Optional[Exception] = None):
        self.chunks: List[List[PersonRecord]] = []
        self.fail_on_chunk = fail_on_chunk
        self.error = error
        self.attempts = 0
        self.closed = False

    async def close(self) -> None:
        self.closed = True

    async def commit(self, records):
        self.attempts += 1
        if self.fail_on_chunk is not None and self.attempts == self.fail_on_chunk:
            raise self.error
        self.chunks.append(list(records))

    @property
    def records(self) -> List[PersonRecord]:
        return [record for chunk in self.chunks for record in chunk]
