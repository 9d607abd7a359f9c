"""
Background workers for processing queued jobs.

Each worker thread polls one queue, claims a job, runs the registered
handler inside the same session, and records success or schedules a retry.
Several workers per queue give the configured concurrency.
"""

import logging
import threading
import time
from contextlib import AbstractContextManager
from typing import Any, Callable, Optional

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from sentinel.config import settings
from sentinel.db.connection import background_session
from sentinel.exceptions import JobHandlerNotFoundError
from sentinel.queue.job_queue import (
    ANALYSIS,
    NOTIFICATIONS,
    SCHEDULED,
    WEBHOOKS,
    JobQueue,
)

logger = logging.getLogger(__name__)

JobHandler = Callable[[Session, dict[str, Any]], Optional[dict[str, Any]]]
SessionFactory = Callable[[], AbstractContextManager[Session]]


class QueueWorker:
    """
    Background worker that processes jobs from one queue.

    Features:
    - Graceful shutdown support
    - Retry with exponential backoff on handler failure
    - Stale job cleanup on start
    """

    def __init__(
        self,
        queue: str,
        handlers: dict[str, JobHandler],
        poll_interval: Optional[float] = None,
        stale_job_timeout_minutes: Optional[int] = None,
        purge_completed_days: Optional[int] = None,
        session_factory: SessionFactory = background_session,
        name: Optional[str] = None,
    ):
        """
        Initialize the worker.

        Args:
            queue: Queue to poll
            handlers: Job name -> handler
            poll_interval: Seconds between queue polls when idle
            stale_job_timeout_minutes: Reset jobs processing longer than this
            purge_completed_days: Delete finished jobs older than this
            session_factory: Context manager factory yielding sessions
            name: Thread/log name
        """
        self.queue = queue
        self.handlers = handlers
        self.poll_interval = (
            poll_interval if poll_interval is not None else settings.worker_poll_interval
        )
        self.stale_job_timeout_minutes = (
            stale_job_timeout_minutes
            if stale_job_timeout_minutes is not None
            else settings.worker_stale_job_timeout_minutes
        )
        self.purge_completed_days = (
            purge_completed_days
            if purge_completed_days is not None
            else settings.worker_purge_completed_days
        )
        self.name = name or f"{queue}-worker"
        self._session_factory = session_factory
        self._running = False
        self._stop_event = threading.Event()
        self._jobs_processed = 0
        self._jobs_succeeded = 0
        self._jobs_failed = 0
        self._last_job_time: Optional[float] = None

    def run(self) -> None:
        """
        Main worker loop.

        Polls the job queue and processes jobs until stopped.
        """
        logger.info(f"{self.name} starting")
        self._running = True

        self.cleanup()

        while not self._stop_event.is_set():
            try:
                job_processed = self.process_next_job()

                if not job_processed:
                    self._stop_event.wait(self.poll_interval)
            except OperationalError as e:
                logger.warning(f"{self.name} DB unavailable: {e}")
                self._stop_event.wait(5.0)
            except Exception as e:
                logger.error(f"Error in {self.name} loop: {e}", exc_info=True)
                self._stop_event.wait(1.0)

        logger.info(
            f"{self.name} stopped. "
            f"Processed: {self._jobs_processed}, "
            f"Succeeded: {self._jobs_succeeded}, "
            f"Failed: {self._jobs_failed}"
        )
        self._running = False

    def stop(self) -> None:
        """Signal the worker to stop gracefully."""
        self._stop_event.set()

    @property
    def is_running(self) -> bool:
        return self._running

    def process_next_job(self) -> bool:
        """
        Process the next job from the queue.

        Returns:
            True if a job was processed, False if queue is empty
        """
        with self._session_factory() as session:
            queue = JobQueue(session)
            job = queue.claim_next(self.queue)

            if not job:
                return False

            job_id = job.id
            job_name = job.name
            payload = dict(job.payload or {})
            self._jobs_processed += 1
            logger.info(f"Processing job {job_id} ({job_name}) on {self.queue}")

            # Persist the claim first so failed attempts are counted even
            # though the handler's work is rolled back
            session.commit()

            try:
                handler = self.handlers.get(job_name)
                if handler is None:
                    raise JobHandlerNotFoundError(self.queue, job_name)

                result = handler(session, payload)

                queue.complete(job_id, success=True, result=result)
                session.commit()

                self._jobs_succeeded += 1
                self._last_job_time = time.time()

            except Exception as e:
                session.rollback()
                queue.complete(job_id, success=False, error=str(e))
                session.commit()

                self._jobs_failed += 1
                logger.warning(f"Failed job {job_id} ({job_name}) on {self.queue}: {e}")

        return True

    def cleanup(self) -> None:
        """Reset stale jobs and purge old finished ones."""
        try:
            with self._session_factory() as session:
                queue = JobQueue(session)
                queue.cleanup_stale_jobs(self.stale_job_timeout_minutes)
                queue.purge_completed(self.purge_completed_days)
                session.commit()
        except OperationalError as e:
            logger.warning(f"{self.name} cleanup skipped (DB unavailable): {e}")

    def stats(self) -> dict[str, object]:
        return {
            "running": self._running,
            "jobs_processed": self._jobs_processed,
            "jobs_succeeded": self._jobs_succeeded,
            "jobs_failed": self._jobs_failed,
            "last_job_time": self._last_job_time,
        }


def queue_concurrency() -> dict[str, int]:
    return {
        WEBHOOKS: settings.webhook_worker_concurrency,
        ANALYSIS: settings.analysis_worker_concurrency,
        NOTIFICATIONS: settings.notification_worker_concurrency,
        SCHEDULED: settings.scheduled_worker_concurrency,
    }


class WorkerPool:
    """Runs the configured number of worker threads for every queue."""

    def __init__(
        self,
        handlers: dict[str, dict[str, JobHandler]],
        concurrency: Optional[dict[str, int]] = None,
    ):
        self.handlers = handlers
        self.concurrency = concurrency or queue_concurrency()
        self.workers: list[QueueWorker] = []
        self._threads: list[threading.Thread] = []

    def start(self) -> None:
        for queue, count in self.concurrency.items():
            for i in range(count):
                worker = QueueWorker(
                    queue, self.handlers.get(queue, {}), name=f"{queue}-worker-{i}"
                )
                thread = threading.Thread(target=worker.run, daemon=True, name=worker.name)
                thread.start()
                self.workers.append(worker)
                self._threads.append(thread)
        logger.info(f"Started {len(self.workers)} queue workers")

    def stop(self, timeout: float = 10.0) -> None:
        for worker in self.workers:
            worker.stop()
        for thread in self._threads:
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning(f"{thread.name} did not stop within {timeout}s timeout")
        self.workers = []
        self._threads = []
        logger.info("Stopped queue workers")
