"""Job queue for async render jobs.

Owns the job table, admission control shared between direct (synchronous)
renders and queued jobs, promotion of pending jobs, per-job progress fan-out
to event-stream subscribers, and TTL cleanup of finished jobs.
"""

from __future__ import annotations

import contextlib
import logging
import queue
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Set

from java_printer.core.exceptions import (
    CapacityError,
    InvalidTransitionError,
    JobNotFoundError,
    JobNotReadyError,
    UserError,
)
from java_printer.core.models import OutputArtifact, UploadInfo
from java_printer.core.settings import RenderSettings
from java_printer.core.utils import remove_tree

logger = logging.getLogger(__name__)

PENDING = "pending"
RUNNING = "running"
DONE = "done"
ERROR = "error"
TERMINAL_STATES = (DONE, ERROR)
_STATE_RANK = {PENDING: 0, RUNNING: 1, DONE: 2, ERROR: 2}

EVENT_PROGRESS = "progress"
EVENT_DONE = "done"
EVENT_FAILED = "failed"

GENERIC_FAILURE_MESSAGE = "Failed to generate PDF."
DEFAULT_JOB_TTL_SECONDS = 300

_CLOSE = object()


def progress_payload(completed: int, total: int) -> Dict[str, int]:
    """Progress event body; percent is 0 when nothing is known about the total."""
    # Half rounds up: 1 of 8 is 13%.
    percent = (200 * completed + total) // (2 * total) if total > 0 else 0
    return {"completed": completed, "total": total, "percent": percent}


@dataclass(frozen=True)
class Event:
    name: str
    data: Dict[str, Any]


class Subscription:
    """One subscriber's view of a job's events.

    Iterating blocks until the next event and stops once the job reaches a
    terminal state or the subscription is closed.
    """

    def __init__(self, manager: "JobManager", job_id: str) -> None:
        self._manager = manager
        self.job_id = job_id
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self.closed = False

    def publish(self, event: Event) -> None:
        if not self.closed:
            self._queue.put(event)

    def finish(self) -> None:
        if not self.closed:
            self.closed = True
            self._queue.put(_CLOSE)

    def close(self) -> None:
        """Unsubscribe (e.g. the client disconnected). The job keeps running."""
        self._manager.unsubscribe(self.job_id, self)
        self.finish()

    def get(self, timeout: Optional[float] = None) -> Optional[Event]:
        """Next event, or None once the stream is closed."""
        item = self._queue.get(timeout=timeout)
        return None if item is _CLOSE else item

    def __iter__(self) -> Iterator[Event]:
        while True:
            item = self._queue.get()
            if item is _CLOSE:
                return
            yield item


@dataclass
class RenderJob:
    """Represents an async render job."""

    job_id: str
    upload: Optional[UploadInfo] = None
    settings: Optional[RenderSettings] = None
    status: str = PENDING
    created_at: float = field(default_factory=time.time)
    started_at: Optional[float] = None
    finished_at: Optional[float] = None
    total_files: int = 0
    completed_files: int = 0
    output: Optional[OutputArtifact] = None
    error: Optional[str] = None
    subscribers: Set[Subscription] = field(default_factory=set)
    cleanup_timer: Optional[threading.Timer] = None

    def advance(self, status: str) -> None:
        """Move forward in pending → running → done|error; never backwards."""
        if _STATE_RANK[status] <= _STATE_RANK[self.status]:
            raise InvalidTransitionError(f"Job {self.job_id} cannot move from {self.status} to {status}")
        self.status = status
        if status == RUNNING:
            self.started_at = time.time()
        elif status in TERMINAL_STATES:
            self.finished_at = time.time()

    def progress(self) -> Dict[str, int]:
        return progress_payload(self.completed_files, self.total_files)

    def terminal_event(self) -> Optional[Event]:
        if self.status == DONE and self.output is not None:
            return Event(EVENT_DONE, {"filename": self.output.filename, "contentType": self.output.content_type})
        if self.status == ERROR:
            return Event(EVENT_FAILED, {"error": self.error or GENERIC_FAILURE_MESSAGE})
        return None


JobRunner = Callable[[RenderJob, Callable[[int], None], Callable[[int, int], None]], OutputArtifact]


class JobManager:
    """Schedules render jobs against a shared capacity pool.

    Args:
        max_active_jobs: Jobs plus direct renders allowed to run at once.
        max_queued_jobs: Pending jobs allowed to wait once capacity is full.
        ttl_seconds: How long a finished job stays addressable.
        runner: ``runner(job, on_start, on_progress)`` renders a job and
            returns its artifact; it runs on the job's worker thread.
    """

    def __init__(
        self,
        max_active_jobs: int,
        max_queued_jobs: int,
        runner: JobRunner,
        ttl_seconds: float = DEFAULT_JOB_TTL_SECONDS,
    ) -> None:
        self.max_active_jobs = max(1, int(max_active_jobs))
        self.max_queued_jobs = max(0, int(max_queued_jobs))
        self.ttl_seconds = ttl_seconds
        self._runner = runner
        self._lock = threading.Lock()
        # Insertion order doubles as the pending queue's FIFO order.
        self._jobs: Dict[str, RenderJob] = {}
        self._direct_in_flight = 0

    # Admission

    def _count_locked(self, status: str) -> int:
        return sum(1 for job in self._jobs.values() if job.status == status)

    def _active_locked(self) -> int:
        return self._count_locked(RUNNING) + self._direct_in_flight

    def submit(self, upload: UploadInfo, settings: RenderSettings) -> str:
        """Create a pending job, or reject when both running and queue capacity are full.

        A rejected upload's temp directory is removed before raising.

        Raises:
            CapacityError: Server is at capacity.
        """
        with self._lock:
            has_slot = self._active_locked() < self.max_active_jobs
            has_queue_room = self._count_locked(PENDING) < self.max_queued_jobs
            job = None
            if has_slot or has_queue_room:
                job_id = uuid.uuid4().hex
                job = RenderJob(job_id=job_id, upload=upload, settings=settings)
                self._jobs[job_id] = job

        if job is None:
            logger.warning("Render job rejected: server at capacity")
            remove_tree(upload.temp_dir)
            raise CapacityError()

        logger.info(f"[{job.job_id}] Job created ({upload.original_name})")
        self.schedule()
        return job.job_id

    @contextlib.contextmanager
    def direct_slot(self):
        """Hold one unit of capacity for a synchronous render.

        Raises:
            CapacityError: No capacity is free right now.
        """
        with self._lock:
            if self._active_locked() >= self.max_active_jobs:
                logger.warning("Direct render rejected: server at capacity")
                raise CapacityError()
            self._direct_in_flight += 1
        try:
            yield
        finally:
            with self._lock:
                self._direct_in_flight -= 1
            self.schedule()

    def schedule(self) -> None:
        """Promote the oldest pending jobs while capacity remains."""
        to_start: List[RenderJob] = []
        with self._lock:
            while self._active_locked() < self.max_active_jobs:
                job = next((j for j in self._jobs.values() if j.status == PENDING), None)
                if job is None:
                    break
                job.advance(RUNNING)
                to_start.append(job)

        for job in to_start:
            logger.info(f"[{job.job_id}] Processing started")
            threading.Thread(
                target=self._execute,
                args=(job,),
                daemon=True,
                name=f"render-job-{job.job_id[:8]}",
            ).start()

    # Execution

    def _broadcast_locked(self, job: RenderJob, event: Event) -> None:
        for subscriber in list(job.subscribers):
            subscriber.publish(event)

    def _close_subscribers_locked(self, job: RenderJob) -> None:
        for subscriber in list(job.subscribers):
            subscriber.finish()
        job.subscribers.clear()

    def _execute(self, job: RenderJob) -> None:
        def on_start(total: int) -> None:
            with self._lock:
                job.total_files = total
                job.completed_files = 0
                self._broadcast_locked(job, Event(EVENT_PROGRESS, job.progress()))

        def on_progress(completed: int, total: int) -> None:
            with self._lock:
                # Renders still in flight after a fail-fast error report late.
                if job.status in TERMINAL_STATES:
                    return
                job.total_files = total
                job.completed_files = max(job.completed_files, completed)
                payload = job.progress()
                self._broadcast_locked(job, Event(EVENT_PROGRESS, payload))
            logger.debug(f"[{job.job_id}] Progress: {payload['percent']}% ({completed}/{total})")

        try:
            artifact = self._runner(job, on_start, on_progress)
        except UserError as e:
            logger.warning(f"[{job.job_id}] Job failed: {e.message}")
            self._fail(job, e.message)
        except Exception as e:
            logger.exception(f"[{job.job_id}] Processing failed: {e}")
            self._fail(job, GENERIC_FAILURE_MESSAGE)
        else:
            self._complete(job, artifact)
        finally:
            if job.upload is not None:
                remove_tree(job.upload.temp_dir)
            self.schedule()

    def _complete(self, job: RenderJob, artifact: OutputArtifact) -> None:
        with self._lock:
            job.output = artifact
            job.completed_files = job.total_files
            job.advance(DONE)
            self._broadcast_locked(job, Event(EVENT_PROGRESS, progress_payload(job.total_files, job.total_files)))
            self._broadcast_locked(job, job.terminal_event())
            self._close_subscribers_locked(job)
            self._schedule_cleanup_locked(job)
        logger.info(f"[{job.job_id}] Job done: {artifact.filename} ({artifact.size_mb:.2f}MB)")

    def _fail(self, job: RenderJob, message: str) -> None:
        with self._lock:
            job.error = message
            job.advance(ERROR)
            self._broadcast_locked(job, job.terminal_event())
            self._close_subscribers_locked(job)
            self._schedule_cleanup_locked(job)

    # Cleanup

    def _schedule_cleanup_locked(self, job: RenderJob) -> None:
        timer = threading.Timer(self.ttl_seconds, self._expire, args=(job.job_id,))
        timer.daemon = True
        job.cleanup_timer = timer
        timer.start()

    def _expire(self, job_id: str) -> None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.status not in TERMINAL_STATES:
                return
            del self._jobs[job_id]
        logger.info(f"[{job_id}] Expired job cleaned up")

    def shutdown(self) -> None:
        """Cancel pending cleanup timers."""
        with self._lock:
            for job in self._jobs.values():
                if job.cleanup_timer is not None:
                    job.cleanup_timer.cancel()

    # Queries

    def get_job(self, job_id: str) -> Optional[RenderJob]:
        with self._lock:
            return self._jobs.get(job_id)

    def subscribe(self, job_id: str) -> Subscription:
        """Attach a subscriber that first receives the current progress snapshot.

        A job already in a terminal state yields its terminal event and a
        closed stream.

        Raises:
            JobNotFoundError: Unknown job id.
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            subscription = Subscription(self, job_id)
            subscription.publish(Event(EVENT_PROGRESS, job.progress()))
            terminal = job.terminal_event()
            if terminal is not None:
                subscription.publish(terminal)
                subscription.finish()
            else:
                job.subscribers.add(subscription)
        return subscription

    def unsubscribe(self, job_id: str, subscription: Subscription) -> None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is not None:
                job.subscribers.discard(subscription)

    def take_output(self, job_id: str) -> OutputArtifact:
        """Hand over a finished job's artifact and forget the job.

        Raises:
            JobNotFoundError: Unknown or expired job id.
            JobNotReadyError: The job has not finished successfully.
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            if job.status != DONE or job.output is None:
                raise JobNotReadyError(job_id)
            del self._jobs[job_id]
            if job.cleanup_timer is not None:
                job.cleanup_timer.cancel()
        logger.info(f"[{job_id}] Output downloaded; job removed")
        return job.output

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "pending": self._count_locked(PENDING),
                "running": self._count_locked(RUNNING),
                "done": self._count_locked(DONE),
                "error": self._count_locked(ERROR),
                "direct_in_flight": self._direct_in_flight,
                "max_active_jobs": self.max_active_jobs,
                "max_queued_jobs": self.max_queued_jobs,
            }
