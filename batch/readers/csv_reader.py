"""
CSV file reader (import job source)
"""

import pandas as pd
from typing import Any, AsyncIterator, Dict
from pathlib import Path
from batch.base import ItemReader
from batch.codec import PersonCodec
from schemas.person import PersonRecord
from core.exceptions import DecodeError, SourceReadError
import logging

logger = logging.getLogger(__name__)


class CSVFileReader(ItemReader):
    """
    Read person rows from a delimited text file.

    Supports:
    - Lazy reading in buffers of ``buffer_rows`` rows
    - Header row skipped, fields named positionally from the codec columns
    - Values kept as text; typing happens in the codec
    """

    name = "csv"

    def __init__(
        self,
        file_path: str,
        codec: PersonCodec = None,
        buffer_rows: int = 10,
        has_header: bool = True,
        delimiter: str = ","
    ):
        self.file_path = Path(file_path)
        self.codec = codec or PersonCodec()
        self.buffer_rows = buffer_rows
        self.has_header = has_header
        self.delimiter = delimiter

    async def open(self) -> None:
        if not self.file_path.is_file():
            raise SourceReadError(
                f"CSV file not found: {self.file_path}",
                context={"file_path": str(self.file_path)}
            )
        logger.info(f"Reading CSV from {self.file_path}")

    def rows(self) -> AsyncIterator[Dict[str, Any]]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Dict[str, Any]]:
        try:
            reader = pd.read_csv(
                self.file_path,
                sep=self.delimiter,
                header=0 if self.has_header else None,
                names=list(self.codec.columns),
                index_col=False,
                dtype=str,
                keep_default_na=False,
                skipinitialspace=True,
                chunksize=self.buffer_rows,
            )
        except pd.errors.EmptyDataError:
            logger.warning(f"CSV file is empty: {self.file_path}")
            return
        except OSError as e:
            raise SourceReadError(
                f"Cannot read CSV file {self.file_path}",
                context={"file_path": str(self.file_path)},
                original_exception=e
            )

        with reader:
            while True:
                try:
                    frame = next(reader)
                except StopIteration:
                    break
                except (pd.errors.ParserError, UnicodeDecodeError, ValueError) as e:
                    raise DecodeError(
                        f"Malformed CSV content in {self.file_path.name}: {e}",
                        context={"file_path": str(self.file_path)},
                        original_exception=e
                    )

                for record in frame.to_dict(orient="records"):
                    yield record

    def decode(self, raw: Dict[str, Any], position: int) -> PersonRecord:
        return self.codec.decode_file_row(raw, position)
