"""
Pydantic schemas for run identities, ledger records and launch results
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict
from datetime import datetime
from uuid import UUID
import enum
import hashlib
import json

from models.base import TriggerOrigin, RunStatus


class RunIdentity(BaseModel):
    """
    Parameters that distinguish one logical job execution from another.

    Two identities are the same logical run iff the job name and every
    parameter match exactly; ``restartable`` is a submission flag, not
    part of the identity.
    """
    job_name: str
    trigger: TriggerOrigin = TriggerOrigin.MANUAL
    submitted_at: datetime
    params: Dict[str, str] = Field(default_factory=dict)
    restartable: bool = False

    class Config:
        frozen = True

    def identity_key(self) -> str:
        """Stable admission key for the run ledger"""
        canonical = json.dumps(
            {"job_name": self.job_name, "params": self.params},
            sort_keys=True,
            separators=(",", ":"),
        )
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class RunRecord(BaseModel):
    """Ledger entry handed out by RunLedger.admit"""
    execution_id: int
    instance_id: int
    run_id: UUID
    identity: RunIdentity
    status: RunStatus = RunStatus.RUNNING
    started_at: datetime
    ended_at: Optional[datetime] = None
    failure_cause: Optional[str] = None


class RunOutcome(BaseModel):
    """Terminal status of one run of the chunked pipeline"""
    status: RunStatus
    cause: Optional[str] = None
    records_read: int = 0
    records_written: int = 0
    chunks_committed: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.COMPLETED


class LaunchStatus(str, enum.Enum):
    """What the launcher reports back to the API or scheduler"""
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REJECTED = "REJECTED"


class LaunchResult(BaseModel):
    """Result of JobLauncher.launch; never an unhandled exception"""
    status: LaunchStatus
    message: str
    job_name: str
    run_id: Optional[UUID] = None
    records_written: int = 0
