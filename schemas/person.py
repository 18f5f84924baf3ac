"""
Pydantic schema for the person record moved by the import and export jobs
"""

from typing import Optional
from pydantic import BaseModel


class PersonRecord(BaseModel):
    """
    Typed person record.

    Only type coercion happens here (e.g. "30" -> 30 for age); any
    further validation policy belongs to the job's processor.
    """
    id: Optional[int] = None
    first_name: str
    last_name: str
    email: str
    age: int

    class Config:
        from_attributes = True
        str_strip_whitespace = True
        json_schema_extra = {
            "example": {
                "id": 1,
                "first_name": "john",
                "last_name": "doe",
                "email": "j@x.com",
                "age": 30
            }
        }
