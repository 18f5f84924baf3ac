"""
On-demand import and export launches
"""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from api.dependencies import get_launcher
from batch.launcher import JobLauncher
from batch.registry import EXPORT_JOB, IMPORT_JOB
from models.base import TriggerOrigin
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/batch", tags=["Batch Jobs"])


@router.post("/import", response_class=PlainTextResponse)
async def import_persons(launcher: JobLauncher = Depends(get_launcher)) -> str:
    """Run the import job (CSV file → person table) and report its outcome"""
    result = await launcher.launch(IMPORT_JOB, TriggerOrigin.MANUAL)
    logger.info(f"POST /batch/import -> {result.status.value}")
    return result.message


@router.post("/export", response_class=PlainTextResponse)
async def export_persons(launcher: JobLauncher = Depends(get_launcher)) -> str:
    """Run the export job (person table → CSV file) and report its outcome"""
    result = await launcher.launch(EXPORT_JOB, TriggerOrigin.MANUAL)
    logger.info(f"POST /batch/export -> {result.status.value}")
    return result.message
