"""
Script to run one batch job launch from the command line

Usage:
    python scripts/run_job.py import
    python scripts/run_job.py export --scheduled
"""

import argparse
import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from batch.launcher import JobLauncher
from batch.ledger import RunLedger
from batch.registry import build_default_registry
from core.config import settings
from core.database import create_engine, create_session_factory
from core.logging import setup_logging
from models.base import TriggerOrigin
from schemas.batch import LaunchStatus

logger = logging.getLogger(__name__)


async def run_job(job_name: str, trigger: TriggerOrigin, restartable: bool) -> int:
    """Launch one job and return a process exit code"""
    engine = create_engine(settings.DATABASE_URL)
    session_factory = create_session_factory(engine)

    try:
        registry = build_default_registry(settings, session_factory)
        ledger = RunLedger(session_factory)

        if settings.RECONCILE_ON_STARTUP:
            await ledger.reconcile_abandoned()

        launcher = JobLauncher(registry, ledger)
        result = await launcher.launch(job_name, trigger, restartable=restartable)

        print(result.message)
        if result.status == LaunchStatus.COMPLETED:
            logger.info(f"{job_name} wrote {result.records_written} records (run {result.run_id})")
            return 0
        return 1

    finally:
        await engine.dispose()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run a person batch job")
    parser.add_argument("job_name", choices=["import", "export"])
    parser.add_argument(
        "--scheduled",
        action="store_true",
        help="Launch with a scheduled run identity (timestamped export file)",
    )
    parser.add_argument(
        "--restartable",
        action="store_true",
        help="Allow re-running an identity that already completed",
    )
    args = parser.parse_args(argv)

    setup_logging()
    trigger = TriggerOrigin.SCHEDULED if args.scheduled else TriggerOrigin.MANUAL
    return asyncio.run(run_job(args.job_name, trigger, args.restartable))


if __name__ == "__main__":
    sys.exit(main())
