from sqlalchemy import Column, BigInteger, String, Enum, DateTime, Float, Integer, Text, Index, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from models.base import Base, TriggerOrigin, RunStatus


class JobExecution(Base):
    """
    Append-only record of each admitted run.

    Purpose:
    - Audit trail of every launch that got past admission
    - Terminal status and failure cause for scheduled runs, which have
      no caller to report to
    - Reconciliation of runs abandoned by a killed process

    A row is created RUNNING at admission and updated exactly once to
    COMPLETED or FAILED. Rows are never deleted.
    """
    __tablename__ = "batch_job_executions"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    run_id = Column(Uuid, default=uuid.uuid4, unique=True, nullable=False, index=True)
    instance_id = Column(BigInteger, ForeignKey("batch_job_instances.id"), nullable=False, index=True)

    job_name = Column(String(100), nullable=False, index=True)
    trigger = Column(Enum(TriggerOrigin), nullable=False)

    status = Column(Enum(RunStatus), default=RunStatus.RUNNING, nullable=False, index=True)

    # Timestamps
    started_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    ended_at = Column(DateTime, nullable=True)
    duration_seconds = Column(Float, nullable=True)

    # Statistics
    records_read = Column(Integer, default=0)
    records_written = Column(Integer, default=0)
    chunks_committed = Column(Integer, default=0)

    failure_cause = Column(Text, nullable=True)

    instance = relationship("JobInstance", back_populates="executions")

    __table_args__ = (
        Index("idx_job_execution_job_started", "job_name", "started_at"),
        Index("idx_job_execution_status", "status", "started_at"),
    )
