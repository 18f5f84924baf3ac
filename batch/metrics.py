"""Prometheus metrics for batch job launches."""

from typing import Optional
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram
import logging

from models.base import TriggerOrigin

logger = logging.getLogger(__name__)

STATUS_SUCCESS = "success"
STATUS_FAILURE = "failure"
STATUS_REJECTED = "rejected"

DURATION_BUCKETS = [0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0]


class _JobSeries:
    """Started / completed / duration series for one trigger origin"""

    def __init__(self, prefix: str, origin_label: str, registry: CollectorRegistry):
        self.started = Counter(
            f"{prefix}batch_job_started_total",
            f"Total number of {origin_label} batch jobs started",
            ["job_name"],
            registry=registry,
        )
        self.completed = Counter(
            f"{prefix}batch_job_completed_total",
            f"Total number of {origin_label} batch jobs finished, by status",
            ["job_name", "status"],
            registry=registry,
        )
        self.duration = Histogram(
            f"{prefix}batch_job_duration_seconds",
            f"Duration of {origin_label} batch jobs in seconds",
            ["job_name"],
            buckets=DURATION_BUCKETS,
            registry=registry,
        )


class BatchMetrics:
    """
    Metrics emitter passed to the launcher and scheduler.

    Manual launches record into ``batch_job_*``; scheduled launches into
    ``scheduled_batch_job_*`` with the same shape. Recording never raises:
    a failing collector drops the event and the launch carries on.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else CollectorRegistry()
        self._series = {
            TriggerOrigin.MANUAL: _JobSeries("", "manual", self.registry),
            TriggerOrigin.SCHEDULED: _JobSeries("scheduled_", "scheduled", self.registry),
        }
        self.active_jobs = Gauge(
            "batch_jobs_active",
            "Number of batch jobs currently running",
            ["job_name"],
            registry=self.registry,
        )

    def on_start(self, job_name: str, origin: TriggerOrigin) -> None:
        try:
            self._series[origin].started.labels(job_name=job_name).inc()
            self.active_jobs.labels(job_name=job_name).inc()
        except Exception as e:
            logger.debug(f"Dropped start metric for '{job_name}': {e}")

    def on_terminal(self, job_name: str, origin: TriggerOrigin, status: str, duration_seconds: float) -> None:
        try:
            series = self._series[origin]
            series.completed.labels(job_name=job_name, status=status).inc()
            series.duration.labels(job_name=job_name).observe(duration_seconds)
            self.active_jobs.labels(job_name=job_name).dec()
        except Exception as e:
            logger.debug(f"Dropped terminal metric for '{job_name}': {e}")
