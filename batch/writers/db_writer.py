"""
Insert person records into the record store (import job sink)
"""

from typing import List
from sqlalchemy import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from batch.base import ItemWriter
from batch.codec import PersonCodec
from models.person import Person
from schemas.person import PersonRecord
from core.exceptions import WriteError
import logging

logger = logging.getLogger(__name__)


class PersonTableWriter(ItemWriter):
    """
    Insert person records with one transaction per chunk.

    Ensures:
    - Plain INSERT (no upsert); a duplicate id fails the whole chunk
    - Atomic chunks: either every row of the chunk is committed or none
    """

    name = "person_table"

    def __init__(self, session_factory: async_sessionmaker, codec: PersonCodec = None):
        self.session_factory = session_factory
        self.codec = codec or PersonCodec()

    async def commit(self, records: List[PersonRecord]) -> None:
        if not records:
            return

        rows = [self.codec.encode_db_row(record) for record in records]

        try:
            async with self.session_factory() as session:
                async with session.begin():
                    await session.execute(insert(Person), rows)
        except SQLAlchemyError as e:
            raise WriteError(
                f"Failed to insert {len(rows)} records into {Person.__tablename__}",
                context={
                    "sink": Person.__tablename__,
                    "operation": "INSERT",
                    "chunk_size": len(rows),
                    "first_id": rows[0].get("id"),
                },
                original_exception=e
            )

        logger.debug(f"Inserted {len(rows)} rows into {Person.__tablename__}")
