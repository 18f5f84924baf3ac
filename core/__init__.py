"""
Core utilities and configuration for the person batch service.

This package provides foundational components used by every batch job:

Modules:
    config: Application configuration and environment variable management
    database: Async engine and session factory construction
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration and utilities

Usage:
    from core.config import settings
    from core.database import create_engine, create_session_factory
    from core.exceptions import DecodeError, WriteError
    from core.logging import setup_logging

Example:
    # Initialize logging
    setup_logging()

    # Build a session factory
    engine = create_engine()
    session_factory = create_session_factory(engine)
    async with session_factory() as session:
        pass
"""

__all__ = [
    "settings",
    "create_engine",
    "create_session_factory",
    "setup_logging",
    # Exceptions
    "BatchJobError",
    "ConfigurationError",
    "JobNotFoundError",
    "AdmissionError",
    "AlreadyRunningError",
    "AlreadyCompletedError",
    "PipelineError",
    "SourceReadError",
    "DecodeError",
    "TransformationError",
    "WriteError",
    "LedgerError",
]
