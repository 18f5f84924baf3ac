"""
Pydantic schemas for data validation and serialization.

This package defines Pydantic models used by the batch engine and the API:

Schemas:
    person: PersonRecord, the typed record moved by every job
    batch: RunIdentity, RunRecord, RunOutcome and LaunchResult
    api: API response models for /health and /runs

Features:
    - Type coercion for CSV text fields (e.g. "30" -> 30)
    - Immutable run identities with a stable admission key
    - JSON serialization for the API

Usage:
    from schemas.person import PersonRecord
    from schemas.batch import RunIdentity, LaunchResult
    from schemas.api import RunsResponse, HealthCheckResponse

Example:
    record = PersonRecord(id="1", first_name="john", last_name="doe",
                          email="j@x.com", age="30")
    assert record.age == 30
"""

__all__ = [
    "PersonRecord",
    "RunIdentity",
    "RunRecord",
    "RunOutcome",
    "LaunchStatus",
    "LaunchResult",
    "JobExecutionInfo",
    "JobSummary",
    "RunsResponse",
    "HealthCheckResponse",
]
