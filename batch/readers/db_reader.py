"""
Person table reader (export job source)
"""

from typing import Any, AsyncIterator, Dict
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from batch.base import ItemReader
from batch.codec import PersonCodec
from models.person import Person
from schemas.person import PersonRecord
from core.exceptions import SourceReadError
import logging

logger = logging.getLogger(__name__)


class PersonTableReader(ItemReader):
    """
    Read the person table ordered by id ascending.

    Rows are fetched in keyset pages (``WHERE id > :last ORDER BY id
    LIMIT :page_size``) so no cursor or transaction stays open between
    chunks.
    """

    name = "person_table"

    def __init__(
        self,
        session_factory: async_sessionmaker,
        codec: PersonCodec = None,
        page_size: int = 100
    ):
        self.session_factory = session_factory
        self.codec = codec or PersonCodec()
        self.page_size = page_size

    def rows(self) -> AsyncIterator[Dict[str, Any]]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Dict[str, Any]]:
        columns = [getattr(Person, column) for column in self.codec.columns]
        last_id = None

        while True:
            stmt = select(*columns).order_by(Person.id).limit(self.page_size)
            if last_id is not None:
                stmt = stmt.where(Person.id > last_id)

            try:
                async with self.session_factory() as session:
                    result = await session.execute(stmt)
                    page = [dict(row) for row in result.mappings().all()]
            except SQLAlchemyError as e:
                raise SourceReadError(
                    "Failed to read from person table",
                    context={"table_name": Person.__tablename__, "after_id": last_id},
                    original_exception=e
                )

            for row in page:
                yield row

            if len(page) < self.page_size:
                break
            last_id = page[-1]["id"]

    def decode(self, raw: Dict[str, Any], position: int) -> PersonRecord:
        return self.codec.decode_db_row(raw, position)
