"""
Custom exceptions for the batch job engine with structured error context.

This module provides the exception hierarchy used by the launcher, the
chunked runner and the run ledger. Each exception carries context
information for logging and for the failure cause stored in the ledger.

Exception Hierarchy:
    BatchJobError (base)
    ├── ConfigurationError
    │   └── JobNotFoundError
    ├── AdmissionError
    │   ├── AlreadyRunningError
    │   └── AlreadyCompletedError
    ├── PipelineError
    │   ├── SourceReadError
    │   ├── DecodeError
    │   ├── TransformationError
    │   └── WriteError
    └── LedgerError
"""

from typing import Optional, Dict, Any
from datetime import datetime


class BatchJobError(Exception):
    """
    Base exception for all batch job errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (job name, row position, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.utcnow()

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Configuration Errors
# ============================================================================

class ConfigurationError(BatchJobError):
    """
    Invalid job or scheduler configuration.

    Fatal at startup or launch and never retried automatically.
    Raised for non-positive chunk sizes, duplicate job names,
    registration after the registry is sealed and bad cron expressions.
    """
    pass


class JobNotFoundError(ConfigurationError):
    """
    Exception raised when a job name cannot be resolved.

    Context should include:
        - job_name: The requested job name
        - known_jobs: Names registered at startup
    """
    pass


# ============================================================================
# Admission Errors
# ============================================================================

class AdmissionError(BatchJobError):
    """
    The run ledger refused to admit a run identity.

    Expected and non-fatal: the caller gets a rejection message and no
    ledger state is mutated.
    """
    pass


class AlreadyRunningError(AdmissionError):
    """An execution with the same run identity is still RUNNING."""
    pass


class AlreadyCompletedError(AdmissionError):
    """The run identity already COMPLETED and was not submitted as restartable."""
    pass


# ============================================================================
# Pipeline Errors
# ============================================================================

class PipelineError(BatchJobError):
    """Base exception for failures that abort a single run."""
    pass


class SourceReadError(PipelineError):
    """
    Exception raised when the source cannot be opened or read.

    Context should include:
        - file_path or table_name: The source that failed
    """
    pass


class DecodeError(PipelineError):
    """
    Exception raised when a raw row cannot be decoded into a record.

    Context should include:
        - position: 1-indexed row position in the source
        - field_errors: Per-field validation messages (if available)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        position: Optional[int] = None
    ):
        super().__init__(message, context, original_exception)
        self.position = position
        if position is not None:
            self.context["position"] = position


class TransformationError(PipelineError):
    """Exception raised when the job's processor fails on a record."""
    pass


class WriteError(PipelineError):
    """
    Exception raised when a chunk cannot be written or committed.

    The chunk's unit of work has been rolled back when this is raised.

    Context should include:
        - sink: Table name or output file path
        - chunk_size: Number of records in the failed chunk
    """
    pass


# ============================================================================
# Ledger Errors
# ============================================================================

class LedgerError(BatchJobError):
    """Illegal run ledger transition, e.g. completing an execution twice."""
    pass
