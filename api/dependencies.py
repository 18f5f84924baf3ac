"""
FastAPI dependencies resolving the components wired in create_app
"""

from typing import AsyncGenerator
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession
from batch.launcher import JobLauncher
from batch.ledger import RunLedger
from batch.scheduler import BatchScheduler


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session"""
    async with request.app.state.session_factory() as session:
        yield session


def get_launcher(request: Request) -> JobLauncher:
    return request.app.state.launcher


def get_ledger(request: Request) -> RunLedger:
    return request.app.state.ledger


def get_scheduler(request: Request) -> BatchScheduler:
    return request.app.state.scheduler
