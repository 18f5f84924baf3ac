"""
Run ledger listing endpoint
"""
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query
from api.dependencies import get_ledger
from batch.ledger import RunLedger
from schemas.api import JobExecutionInfo, JobSummary, RunsResponse
import uuid
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Runs"])


@router.get("/runs", response_model=RunsResponse)
async def get_runs(
    limit: int = Query(10, ge=1, le=100, description="Number of recent runs to return"),
    job_name: Optional[str] = Query(None, description="Only runs of this job"),
    ledger: RunLedger = Depends(get_ledger)
):
    """
    Get run ledger contents.

    Returns:
    - Per-job execution counts by status
    - Recent executions, newest first, with failure causes
    """
    request_id = f"req_{uuid.uuid4().hex[:12]}"

    logger.info(f"[{request_id}] GET /runs")

    summary = await ledger.summary()
    executions = await ledger.recent_executions(limit=limit, job_name=job_name)

    jobs = [
        JobSummary(job_name=name, **counts)
        for name, counts in sorted(summary.items())
        if job_name is None or name == job_name
    ]

    logger.info(f"[{request_id}] Runs: {len(executions)} recent, {len(jobs)} jobs")

    return RunsResponse(
        timestamp=datetime.utcnow(),
        jobs=jobs,
        recent_runs=[JobExecutionInfo.model_validate(execution) for execution in executions],
        request_id=request_id
    )
