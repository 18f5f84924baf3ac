from sqlalchemy import Column, BigInteger, String, Integer
from models.base import Base


class Person(Base):
    """
    Record store for the import and export jobs.

    Import inserts rows with the identifier taken from the source file
    (no upsert, a duplicate id fails the chunk). Export reads rows
    ordered by id ascending.
    """
    __tablename__ = "person"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    age = Column(Integer, nullable=False)
