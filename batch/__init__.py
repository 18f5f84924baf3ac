"""
Batch job engine for moving person records between a CSV file and the database.

This package contains every component needed to run the import and export jobs:

Modules:
    base: Abstract reader / writer classes and the chunk unit of work
    codec: Person record codec for CSV rows and database rows
    registry: Job definitions and the process-lifetime job registry
    runner: Chunked read → process → write engine
    ledger: Durable run ledger with the admission gate
    launcher: Resolve, admit, run, record and report a job launch
    scheduler: APScheduler cron triggers for scheduled launches
    metrics: Prometheus counters and timers per job and trigger origin

Subpackages:
    readers: CSV file and person table sources
    writers: CSV file and person table sinks
    processors: Per-record processors (uppercase first name, passthrough)

Architecture:
    API or Scheduler → JobLauncher → RunLedger.admit → ChunkRunner
    → RunLedger.complete → BatchMetrics → LaunchResult

    Chunks are processed strictly in order within a run, one transaction
    per chunk. Different run identities may run concurrently; the same
    identity may not.

Usage:
    from batch.registry import build_default_registry
    from batch.ledger import RunLedger
    from batch.launcher import JobLauncher

Example:
    registry = build_default_registry(settings, session_factory)
    launcher = JobLauncher(registry, RunLedger(session_factory))

    result = await launcher.launch("import")
    print(result.message)

Error Handling:
    Pipeline failures (bad rows, processor errors, write failures) end the
    run FAILED with the committed chunks kept. Admission conflicts are
    reported as REJECTED. See core.exceptions for the hierarchy.
"""

__all__ = [
    "ItemReader",
    "ItemWriter",
    "PersonCodec",
    "JobDefinition",
    "JobRegistry",
    "ChunkRunner",
    "RunLedger",
    "JobLauncher",
    "BatchScheduler",
    "BatchMetrics",
]
