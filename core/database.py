"""
Database session management with SQLAlchemy async
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool
from core.config import settings
import logging

logger = logging.getLogger(__name__)


def create_engine(database_url: str = None, echo: bool = False) -> AsyncEngine:
    """Create an async engine for the given URL (defaults to settings)"""
    return create_async_engine(
        database_url or settings.DATABASE_URL,
        echo=echo,
        poolclass=NullPool,  # For async, connection pooling handled differently
        future=True
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Create the session factory shared by the ledger, readers and writers"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False
    )
