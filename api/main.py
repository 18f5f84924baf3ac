"""
FastAPI application initialization
"""

from typing import Optional
import uvicorn
from fastapi import FastAPI
from prometheus_client import make_asgi_app
from sqlalchemy.ext.asyncio import async_sessionmaker
from api.routes import health, jobs, job_management, runs
from api.middleware import RequestContextMiddleware
from batch.launcher import JobLauncher
from batch.ledger import RunLedger
from batch.metrics import BatchMetrics
from batch.registry import EXPORT_JOB, IMPORT_JOB, build_default_registry
from batch.runner import ChunkRunner
from batch.scheduler import BatchScheduler
from core.config import Settings, settings as default_settings
from core.database import create_engine, create_session_factory
from core.logging import setup_logging
import logging

# Configure logging
setup_logging()

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[async_sessionmaker] = None,
    metrics: Optional[BatchMetrics] = None
) -> FastAPI:
    """
    Build the application with every component wired explicitly.

    Components are stored on ``app.state`` (settings, session_factory,
    registry, ledger, metrics, launcher, scheduler) for the route
    dependencies in api.dependencies.
    """
    settings = settings or default_settings

    engine = None
    if session_factory is None:
        engine = create_engine(settings.DATABASE_URL, echo=settings.ENVIRONMENT == "development")
        session_factory = create_session_factory(engine)

    registry = build_default_registry(settings, session_factory)
    ledger = RunLedger(session_factory)
    metrics = metrics or BatchMetrics()
    launcher = JobLauncher(registry, ledger, ChunkRunner(), metrics)
    scheduler = BatchScheduler(
        launcher,
        ledger,
        schedules={IMPORT_JOB: settings.IMPORT_CRON, EXPORT_JOB: settings.EXPORT_CRON},
    )

    app = FastAPI(
        title="Person Batch Service API",
        description="Import and export person records between CSV files and the database",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.registry = registry
    app.state.ledger = ledger
    app.state.metrics = metrics
    app.state.launcher = launcher
    app.state.scheduler = scheduler

    app.add_middleware(RequestContextMiddleware)

    # Include routers
    app.include_router(health.router)
    app.include_router(jobs.router)
    app.include_router(job_management.router)
    app.include_router(runs.router)

    # Mount Prometheus metrics
    app.mount("/metrics", make_asgi_app(registry=metrics.registry))

    @app.on_event("startup")
    async def startup_event():
        """Application startup event"""
        logger.info("Starting Person Batch Service API")
        logger.info(f"Environment: {settings.ENVIRONMENT}")
        logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")

        if settings.RECONCILE_ON_STARTUP:
            await ledger.reconcile_abandoned()

        if settings.SCHEDULER_ENABLED:
            scheduler.start()

    @app.on_event("shutdown")
    async def shutdown_event():
        """Application shutdown event"""
        logger.info("Shutting down Person Batch Service API")
        scheduler.stop()
        if engine is not None:
            await engine.dispose()

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": "Person Batch Service API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/health",
            "endpoints": {
                "import": "POST /batch/import",
                "export": "POST /batch/export",
                "trigger_import": "POST /job-management/trigger-import",
                "trigger_export": "POST /job-management/trigger-export",
                "runs": "/runs",
                "metrics": "/metrics"
            }
        }

    return app


app = create_app()


def run(settings: Optional[Settings] = None) -> None:
    """Serve the module-level app on the configured host and port"""
    settings = settings or default_settings
    logger.info(f"Starting API on {settings.API_HOST}:{settings.API_PORT}")
    uvicorn.run(
        "api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
