"""
SQLAlchemy ORM models for database tables.

This package defines the database schema using SQLAlchemy ORM models:

Models:
    base: Base declarative class and shared enums (TriggerOrigin, RunStatus)
    person: The record store read by export and written by import
    job_instance: One row per run identity (admission gate)
    job_execution: Append-only record of every admitted run

Database Schema:
    All models inherit from the Base declarative class. JSON columns use
    JSONB on PostgreSQL and plain JSON elsewhere so the same models run
    on SQLite in tests.

Usage:
    from models.person import Person
    from models.job_instance import JobInstance
    from models.job_execution import JobExecution
    from models.base import TriggerOrigin, RunStatus

Relationships:
    - JobInstance → JobExecution (one-to-many; one execution per admission)
"""

__all__ = [
    "Base",
    "TriggerOrigin",
    "RunStatus",
    "Person",
    "JobInstance",
    "JobExecution",
]
