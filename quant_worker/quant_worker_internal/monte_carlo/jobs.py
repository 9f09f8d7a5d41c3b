"""
PURPOSE: Background job wrapper around the risk simulation for polling clients.

RESPONSIBILITIES:
- Run a simulation on a daemon thread under a job id
- Report progress as completed iterations, checked between batches
- Cooperative cancellation via a flag checked between batches
- Expire finished jobs (15 minutes completed, 5 minutes failed/cancelled)

The engine itself has no notion of jobs, timeouts or cancellation. This
module only drives IterationEngine batch by batch and then runs the
analysis stages on the merged record.
"""

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from quant_worker_internal.monte_carlo.config import (
    JOB_COMPLETED_TTL_SECONDS,
    JOB_FAILED_TTL_SECONDS,
    JOB_PURGE_INTERVAL_SECONDS,
)
from quant_worker_internal.monte_carlo.engine import RandomState
from quant_worker_internal.monte_carlo.errors import SimulationValidationError
from quant_worker_internal.monte_carlo.models import RiskInput, SimulationSettings
from quant_worker_internal.monte_carlo.outputs import SimulationResult
from quant_worker_internal.monte_carlo.simulation import RiskSimulation

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


_FINISHED = (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)


def generate_job_id() -> str:
    return str(uuid.uuid4())


@dataclass
class SimulationJob:
    """State of one background simulation."""
    job_id: str
    total_iterations: int
    revision_id: Optional[str] = None
    status: JobStatus = JobStatus.PENDING
    completed_iterations: int = 0
    result: Optional[SimulationResult] = None
    error: Optional[Dict[str, Any]] = None
    started_at: float = field(default_factory=time.time)
    ended_at: Optional[float] = None
    _cancel_event: threading.Event = field(default_factory=threading.Event, repr=False)
    _done_event: threading.Event = field(default_factory=threading.Event, repr=False)

    @property
    def is_finished(self) -> bool:
        return self.status in _FINISHED

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_event.is_set()

    @property
    def progress_percentage(self) -> float:
        if self.total_iterations <= 0:
            return 0.0
        return 100.0 * self.completed_iterations / self.total_iterations

    def to_dict(self) -> Dict[str, Any]:
        """Status snapshot for polling (the result itself is fetched separately)."""
        return {
            "job_id": self.job_id,
            "revision_id": self.revision_id,
            "status": self.status.value,
            "completed_iterations": self.completed_iterations,
            "total_iterations": self.total_iterations,
            "progress_percentage": self.progress_percentage,
            "error": self.error,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
        }


class SimulationJobStore:
    """
    In-memory registry of background simulation jobs.

    Example:
        >>> store = SimulationJobStore()
        >>> job = store.submit(risks, SimulationSettings(iterations=50000), base=1_000_000)
        >>> store.wait(job.job_id, timeout=30).status
        <JobStatus.COMPLETED: 'completed'>
    """

    def __init__(
        self,
        simulation: Optional[RiskSimulation] = None,
        completed_ttl_seconds: float = JOB_COMPLETED_TTL_SECONDS,
        failed_ttl_seconds: float = JOB_FAILED_TTL_SECONDS,
    ):
        self.simulation = simulation or RiskSimulation()
        self.completed_ttl_seconds = completed_ttl_seconds
        self.failed_ttl_seconds = failed_ttl_seconds
        self._jobs: Dict[str, SimulationJob] = {}
        self._lock = threading.Lock()

    def submit(
        self,
        risks: Iterable[RiskInput],
        settings: SimulationSettings,
        base: float = 0.0,
        random_state: RandomState = None,
        revision_id: Optional[str] = None,
        total_risks: Optional[int] = None,
    ) -> SimulationJob:
        """Register a job and start it on a daemon thread."""
        job = SimulationJob(
            job_id=generate_job_id(),
            total_iterations=settings.iterations,
            revision_id=revision_id,
        )
        with self._lock:
            self._jobs[job.job_id] = job
        logger.info(
            "Created simulation job %s for revision %s (%s iterations)",
            job.job_id,
            revision_id,
            settings.iterations,
        )

        thread = threading.Thread(
            target=self._run_job,
            args=(job, list(risks), settings, base, random_state, total_risks),
            name=f"simulation-{job.job_id}",
            daemon=True,
        )
        thread.start()
        return job

    def _run_job(self, job: SimulationJob, risks: List[RiskInput], settings: SimulationSettings,
                 base: float, random_state: RandomState, total_risks: Optional[int]) -> None:
        engine = self.simulation.engine
        job.status = JobStatus.RUNNING
        try:
            plan = engine.plan(risks, settings, base, random_state)
            batches = []
            for spec in plan.batches:
                if job.cancel_requested:
                    job.status = JobStatus.CANCELLED
                    logger.info("Simulation job %s cancelled after %s iterations",
                                job.job_id, job.completed_iterations)
                    return
                batches.append(engine.run_batch(plan, spec))
                job.completed_iterations += spec.size

            raw = engine.assemble(plan, batches)
            job.result = self.simulation.analyze(raw, settings, total_risks=total_risks)
            job.status = JobStatus.COMPLETED
        except SimulationValidationError as e:
            logger.warning("Simulation job %s rejected: %s", job.job_id, e)
            job.error = e.to_dict()
            job.status = JobStatus.FAILED
        except Exception as e:
            logger.exception("Simulation job %s failed", job.job_id)
            job.error = {"message": str(e), "risk_id": None, "field": None}
            job.status = JobStatus.FAILED
        finally:
            job.ended_at = time.time()
            job._done_event.set()

    def get(self, job_id: str) -> Optional[SimulationJob]:
        with self._lock:
            return self._jobs.get(job_id)

    def list_jobs(self, revision_id: Optional[str] = None) -> List[SimulationJob]:
        with self._lock:
            jobs = list(self._jobs.values())
        if revision_id is not None:
            jobs = [job for job in jobs if job.revision_id == revision_id]
        return jobs

    def cancel(self, job_id: str) -> bool:
        """Request cancellation. Returns False if the job is unknown or already finished."""
        job = self.get(job_id)
        if job is None or job.is_finished:
            return False
        job._cancel_event.set()
        return True

    def wait(self, job_id: str, timeout: Optional[float] = None) -> SimulationJob:
        """
        Block until the job finishes or the timeout elapses.

        Raises:
            KeyError: If the job id is unknown
        """
        job = self.get(job_id)
        if job is None:
            raise KeyError(f"Unknown simulation job: {job_id}")
        job._done_event.wait(timeout)
        return job

    def purge_finished(self, now: Optional[float] = None) -> int:
        """Delete finished jobs older than their TTL. Returns the number deleted."""
        now = time.time() if now is None else now
        deleted = 0
        with self._lock:
            for job_id, job in list(self._jobs.items()):
                if not job.is_finished or job.ended_at is None:
                    continue
                ttl = self.completed_ttl_seconds if job.status is JobStatus.COMPLETED else self.failed_ttl_seconds
                age = now - job.ended_at
                if age > ttl:
                    logger.debug("Cleaning up simulation job %s (status: %s, age: %.0fs)",
                                 job_id, job.status.value, age)
                    del self._jobs[job_id]
                    deleted += 1
        return deleted

    def start_purge_scheduler(self, purge_interval_seconds: float = JOB_PURGE_INTERVAL_SECONDS) -> threading.Thread:
        """
        Start the purge scheduler in a background thread.
        """
        logger.info("Starting simulation job purge scheduler every %s seconds", purge_interval_seconds)

        def purge_scheduler():
            while True:
                self.purge_finished()
                time.sleep(purge_interval_seconds)

        purge_thread = threading.Thread(target=purge_scheduler, name="simulation-job-purge", daemon=True)
        purge_thread.start()
        return purge_thread
