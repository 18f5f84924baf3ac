"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Dict
from datetime import datetime
from uuid import UUID
from models.base import RunStatus, TriggerOrigin


# ============================================================================
# Run Ledger Schemas
# ============================================================================

class JobExecutionInfo(BaseModel):
    """One ledger execution as exposed by /runs and /health"""
    run_id: UUID
    job_name: str
    trigger: TriggerOrigin
    status: RunStatus
    started_at: datetime
    ended_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    records_read: int = 0
    records_written: int = 0
    chunks_committed: int = 0
    failure_cause: Optional[str] = None

    class Config:
        from_attributes = True
        use_enum_values = True


class JobSummary(BaseModel):
    """Per-job execution counts"""
    job_name: str
    total_runs: int = 0
    running: int = 0
    completed: int = 0
    failed: int = 0
    last_started_at: Optional[datetime] = None


class RunsResponse(BaseModel):
    """Run ledger listing"""
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    jobs: List[JobSummary] = Field(default_factory=list)
    recent_runs: List[JobExecutionInfo] = Field(default_factory=list)
    request_id: Optional[str] = None


# ============================================================================
# Health Check Schemas
# ============================================================================

class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field("healthy", description="Overall system status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    database_connected: bool
    scheduler_running: bool = False
    registered_jobs: List[str] = Field(default_factory=list)
    last_runs: Dict[str, JobExecutionInfo] = Field(default_factory=dict)

    @model_validator(mode="after")
    def determine_status(self):
        """Determine overall health status"""
        if not self.database_connected:
            self.status = "unhealthy"
        elif any(run.status == RunStatus.FAILED.value for run in self.last_runs.values()):
            self.status = "degraded"
        else:
            self.status = "healthy"
        return self

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "timestamp": "2024-01-15T10:30:00Z",
                "database_connected": True,
                "scheduler_running": True,
                "registered_jobs": ["export", "import"],
                "last_runs": {}
            }
        }
