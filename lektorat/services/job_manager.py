"""
In-memory singleton that tracks background editing / translation jobs.

Usage
-----
    from lektorat.services.job_manager import job_manager

    status = job_manager.create("editing", total_chunks=3)
    job_manager.start(status, run_job(status))
    # ... later ...
    current = job_manager.get_status(status.job_id)
    job_manager.cancel(status.job_id)

Each job owns an ``asyncio.Event``; the running coroutine hands it to the
chunk orchestrator, which stops at the next boundary once it is set.
Finished jobs (and their results) are forgotten JOB_RETENTION_SECONDS after
they end.
"""
from __future__ import annotations

import asyncio
import dataclasses
import enum
import logging
import time
import uuid
from typing import Any, Coroutine, Dict, Optional

from lektorat.config import settings
from lektorat.exceptions import JobCancelledError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Job phase enum
# ---------------------------------------------------------------------------

class JobPhase(str, enum.Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


_FINAL_PHASES = (JobPhase.COMPLETED, JobPhase.FAILED, JobPhase.CANCELLED)


# ---------------------------------------------------------------------------
# Job status (mutable dataclass shared between task and poller)
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class JobStatus:
    kind: str
    job_id: str = dataclasses.field(default_factory=lambda: uuid.uuid4().hex)
    user_id: Optional[str] = None
    phase: JobPhase = JobPhase.QUEUED
    completed_chunks: int = 0
    total_chunks: int = 0
    error: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
    cancel_event: asyncio.Event = dataclasses.field(default_factory=asyncio.Event, repr=False)
    started_at: float = dataclasses.field(default_factory=time.monotonic)
    completed_at: Optional[float] = None

    @property
    def elapsed_seconds(self) -> float:
        end = self.completed_at if self.completed_at else time.monotonic()
        return round(end - self.started_at, 2)

    @property
    def is_finished(self) -> bool:
        return self.phase in _FINAL_PHASES

    def update_progress(self, completed: int, total: int) -> None:
        """Progress callback for the chunk orchestrator."""
        self.completed_chunks = completed
        self.total_chunks = total


# ---------------------------------------------------------------------------
# Job manager (class-level state, acts as a singleton)
# ---------------------------------------------------------------------------

class JobManager:
    """Manages background job asyncio.Tasks by job id."""

    _tasks: Dict[str, asyncio.Task] = {}
    _status: Dict[str, JobStatus] = {}

    @classmethod
    def create(
        cls,
        kind: str,
        total_chunks: int = 0,
        user_id: Optional[str] = None,
    ) -> JobStatus:
        """Register a queued job so its status can be passed into the coroutine."""
        cls.evict_expired()
        status = JobStatus(kind=kind, total_chunks=total_chunks, user_id=user_id)
        cls._status[status.job_id] = status
        return status

    @classmethod
    def is_running(cls, job_id: str) -> bool:
        task = cls._tasks.get(job_id)
        return task is not None and not task.done()

    @classmethod
    def get_status(cls, job_id: str) -> Optional[JobStatus]:
        cls.evict_expired()
        return cls._status.get(job_id)

    @classmethod
    def start(cls, status: JobStatus, coro: Coroutine[Any, Any, Dict[str, Any]]) -> JobStatus:
        """
        Launch *coro* as the background task for *status*.

        The coroutine's return value becomes ``status.result``.  Failures
        are recorded on the status object rather than raised, since nobody
        awaits the task.
        """
        if cls.is_running(status.job_id):
            raise RuntimeError(f"Job {status.job_id} is already running")

        cls._status[status.job_id] = status

        async def _wrapper() -> None:
            status.phase = JobPhase.PROCESSING
            try:
                status.result = await coro
                status.phase = JobPhase.COMPLETED
            except (JobCancelledError, asyncio.CancelledError):
                logger.info("Job %s cancelled", status.job_id)
                status.phase = JobPhase.CANCELLED
                status.result = None
            except Exception as exc:
                logger.error("Job %s failed: %s", status.job_id, exc, exc_info=True)
                status.phase = JobPhase.FAILED
                status.error = str(exc)[:500]
            finally:
                status.completed_at = time.monotonic()
                if status.phase not in _FINAL_PHASES:
                    status.phase = JobPhase.FAILED

        task = asyncio.create_task(_wrapper())
        cls._tasks[status.job_id] = task

        # Cleanup reference when done
        task.add_done_callback(lambda _t: cls._cleanup(status.job_id))

        logger.info("Job %s (%s) started", status.job_id, status.kind)
        return status

    @classmethod
    def cancel(cls, job_id: str) -> Optional[JobStatus]:
        """
        Signal cancellation.  The job stops at its next chunk boundary (or
        interrupts an in-flight provider call) and ends in CANCELLED.
        """
        status = cls._status.get(job_id)
        if status is None:
            return None
        if not status.is_finished:
            status.cancel_event.set()
            logger.info("Job %s: cancellation requested", job_id)
        return status

    @classmethod
    def evict_expired(cls, now: Optional[float] = None) -> int:
        """Drop finished jobs older than the retention window; returns how many."""
        now = time.monotonic() if now is None else now
        cutoff = now - settings.JOB_RETENTION_SECONDS
        expired = [
            job_id
            for job_id, status in cls._status.items()
            if status.completed_at is not None and status.completed_at <= cutoff
        ]
        for job_id in expired:
            cls._status.pop(job_id, None)
        if expired:
            logger.info("Evicted %d finished job(s)", len(expired))
        return len(expired)

    @classmethod
    def _cleanup(cls, job_id: str) -> None:
        """Remove the task reference (status is kept for polling)."""
        cls._tasks.pop(job_id, None)

    @classmethod
    def reset(cls) -> None:
        """Forget all jobs; cancels anything still running."""
        for task in cls._tasks.values():
            task.cancel()
        cls._tasks.clear()
        cls._status.clear()


# Module-level singleton instance
job_manager = JobManager
