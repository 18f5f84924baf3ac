"""
Health check endpoint with database and run ledger status
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from api.dependencies import get_db, get_ledger
from batch.ledger import RunLedger
from schemas.api import HealthCheckResponse, JobExecutionInfo
from datetime import datetime
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    request: Request,
    db: AsyncSession = Depends(get_db),
    ledger: RunLedger = Depends(get_ledger)
):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - Scheduler state and registered jobs
    - Last execution of each job
    """

    # Check database connectivity
    db_connected = False

    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
    except Exception as e:
        logger.error(f"Database connection failed: {str(e)}")

    registered_jobs = request.app.state.registry.names()
    last_runs = {}

    if db_connected:
        try:
            for job_name in registered_jobs:
                executions = await ledger.recent_executions(limit=1, job_name=job_name)
                if executions:
                    last_runs[job_name] = JobExecutionInfo.model_validate(executions[0])
        except Exception as e:
            logger.error(f"Failed to fetch run ledger: {str(e)}")

    scheduler = request.app.state.scheduler
    scheduler_running = bool(scheduler and scheduler.scheduler.running)

    return HealthCheckResponse(
        timestamp=datetime.utcnow(),
        database_connected=db_connected,
        scheduler_running=scheduler_running,
        registered_jobs=registered_jobs,
        last_runs=last_runs
    )
