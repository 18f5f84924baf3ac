from sqlalchemy import Column, BigInteger, Integer, String, Enum, DateTime, Boolean, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from models.base import Base, JSONType, TriggerOrigin, RunStatus


class JobInstance(Base):
    """
    One row per logical run (run identity).

    Purpose:
    - Admission gate: the unique identity_key plus the status column is
      the compare-and-set target for RunLedger.admit
    - Idempotent-restart detection (COMPLETED identities are refused
      unless resubmitted as restartable)

    Design:
    - identity_key is a SHA-256 of job name + run parameters
    - status mirrors the latest execution of the identity
    """
    __tablename__ = "batch_job_instances"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    identity_key = Column(String(64), nullable=False)

    job_name = Column(String(100), nullable=False, index=True)
    trigger = Column(Enum(TriggerOrigin), nullable=False)
    parameters = Column(JSONType, nullable=False)

    status = Column(Enum(RunStatus), nullable=False, index=True)
    restartable = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    executions = relationship("JobExecution", back_populates="instance")

    __table_args__ = (
        Index("idx_job_instance_identity", "identity_key", unique=True),
    )
