"""
Person record codec for the flat file and the record store
"""

from typing import Any, Dict, Mapping, Optional, Sequence
from pydantic import ValidationError as PydanticValidationError
from schemas.person import PersonRecord
from core.exceptions import DecodeError


PERSON_COLUMNS = ("id", "first_name", "last_name", "email", "age")


class PersonCodec:
    """
    Converts between raw rows and PersonRecord.

    File rows are dictionaries keyed by column name (the reader assigns
    names positionally from ``columns``); the header line written on
    encode comes from ``header``, which defaults to the column names.
    Store rows are mappings keyed by table column name.
    """

    def __init__(
        self,
        columns: Sequence[str] = PERSON_COLUMNS,
        header: Optional[Sequence[str]] = None
    ):
        self.columns = tuple(columns)
        self.header = tuple(header) if header is not None else self.columns

    def header_line(self) -> str:
        return ",".join(self.header)

    def decode_file_row(self, raw: Mapping[str, Any], position: int) -> PersonRecord:
        """Decode a delimited-text row; position is 1-indexed, header excluded"""
        values = {}
        for column in self.columns:
            value = raw.get(column)
            # short rows come back from the reader as empty strings
            if value is None or (isinstance(value, str) and not value.strip()):
                raise DecodeError(
                    f"Row {position}: missing field '{column}'",
                    context={"field": column},
                    position=position
                )
            values[column] = value

        return self._validate(values, position)

    def encode_file_row(self, record: PersonRecord) -> Dict[str, Any]:
        data = record.model_dump()
        return {column: data[column] for column in self.columns}

    def decode_db_row(self, row: Mapping[str, Any], position: int) -> PersonRecord:
        """Decode a store row; mapping is by column name"""
        missing = [column for column in self.columns if column not in row or row[column] is None]
        if missing:
            raise DecodeError(
                f"Row {position}: missing field(s) {', '.join(missing)}",
                context={"fields": missing},
                position=position
            )
        return self._validate({column: row[column] for column in self.columns}, position)

    def encode_db_row(self, record: PersonRecord) -> Dict[str, Any]:
        data = record.model_dump(exclude_none=True)
        return {column: data[column] for column in self.columns if column in data}

    @staticmethod
    def _validate(values: Dict[str, Any], position: int) -> PersonRecord:
        try:
            return PersonRecord.model_validate(values)
        except PydanticValidationError as e:
            field_errors = {
                ".".join(str(part) for part in error["loc"]): error["msg"]
                for error in e.errors()
            }
            details = "; ".join(f"{field}: {msg}" for field, msg in field_errors.items())
            raise DecodeError(
                f"Row {position}: {details}",
                context={"field_errors": field_errors},
                original_exception=e,
                position=position
            )
