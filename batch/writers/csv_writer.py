"""
CSV file writer (export job sink)
"""

import pandas as pd
from typing import List, Optional, TextIO
from pathlib import Path
from batch.base import ItemWriter
from batch.codec import PersonCodec
from schemas.person import PersonRecord
from core.exceptions import WriteError
import logging

logger = logging.getLogger(__name__)


class CSVFileWriter(ItemWriter):
    """
    Write person records to a delimited text file.

    ``open()`` truncates the file and writes the header line; each
    committed chunk is appended and flushed. A chunk that fails to
    serialise leaves the file as it was after the previous chunk.
    """

    name = "csv"

    def __init__(self, file_path: str, codec: PersonCodec = None, delimiter: str = ","):
        self.file_path = Path(file_path)
        self.codec = codec or PersonCodec()
        self.delimiter = delimiter
        self._handle: Optional[TextIO] = None

    async def open(self) -> None:
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            self._handle = open(self.file_path, "w", newline="", encoding="utf-8")
            self._handle.write(self.codec.header_line() + "\n")
            self._handle.flush()
        except OSError as e:
            raise WriteError(
                f"Cannot open output file {self.file_path}",
                context={"sink": str(self.file_path)},
                original_exception=e
            )
        logger.info(f"Writing CSV to {self.file_path}")

    async def commit(self, records: List[PersonRecord]) -> None:
        if self._handle is None:
            raise WriteError(
                "CSV writer used before open()",
                context={"sink": str(self.file_path)}
            )
        if not records:
            return

        try:
            frame = pd.DataFrame(
                [self.codec.encode_file_row(record) for record in records],
                columns=list(self.codec.columns),
            )
            # Render fully before touching the file so a failure appends nothing
            payload = frame.to_csv(
                header=False,
                index=False,
                sep=self.delimiter,
                lineterminator="\n",
            )
            self._handle.write(payload)
            self._handle.flush()
        except (OSError, ValueError) as e:
            raise WriteError(
                f"Failed to write {len(records)} records to {self.file_path}",
                context={"sink": str(self.file_path), "chunk_size": len(records)},
                original_exception=e
            )

    async def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None
