"""
Job queue service.

Provides a PostgreSQL-based job queue shared by webhook ingestion, commit
analysis, notifications and scheduled jobs. Jobs are keyed by a caller
supplied idempotency key so duplicate enqueues collapse into one row.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sentinel.models.db import Job, JobStatus
from sentinel.utils.clock import utcnow

logger = logging.getLogger(__name__)

WEBHOOKS = "webhooks"
ANALYSIS = "analysis"
NOTIFICATIONS = "notifications"
SCHEDULED = "scheduled-jobs"


@dataclass(frozen=True)
class QueueOptions:
    """Retry policy applied to jobs enqueued on a queue."""

    max_attempts: int
    backoff_seconds: float


QUEUE_OPTIONS: dict[str, QueueOptions] = {
    WEBHOOKS: QueueOptions(max_attempts=3, backoff_seconds=1.0),
    ANALYSIS: QueueOptions(max_attempts=3, backoff_seconds=2.0),
    NOTIFICATIONS: QueueOptions(max_attempts=3, backoff_seconds=5.0),
    SCHEDULED: QueueOptions(max_attempts=1, backoff_seconds=1.0),
}


@dataclass
class QueueStats:
    """Statistics about a job queue."""

    pending: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0
    total: int = 0

    @property
    def active(self) -> int:
        """Jobs that are pending or processing."""
        return self.pending + self.processing


class JobQueue:
    """
    PostgreSQL-based job queue.

    Uses SELECT FOR UPDATE SKIP LOCKED for atomic job claiming,
    ensuring safe concurrent access from multiple workers.
    """

    def __init__(self, session: Session):
        self.session = session

    def enqueue(
        self,
        queue: str,
        name: str,
        payload: dict[str, Any],
        job_id: str,
        run_after: Optional[datetime] = None,
    ) -> str:
        """
        Add a job unless one with the same id already exists.

        Args:
            queue: Queue name
            name: Job name, used to select the handler
            payload: JSON-serializable job data
            job_id: Idempotency key
            run_after: Earliest time the job may run

        Returns:
            The job id (existing or new)
        """
        existing = self.session.get(Job, job_id)
        if existing:
            logger.debug(f"Job {job_id} already exists on {existing.queue}, not enqueuing")
            return job_id

        options = QUEUE_OPTIONS.get(queue, QueueOptions(3, 1.0))
        try:
            with self.session.begin_nested():
                self.session.add(
                    Job(
                        id=job_id,
                        queue=queue,
                        name=name,
                        payload=payload,
                        status=JobStatus.PENDING.value,
                        attempts=0,
                        max_attempts=options.max_attempts,
                        backoff_seconds=options.backoff_seconds,
                        run_after=run_after or utcnow(),
                        created_at=utcnow(),
                    )
                )
        except IntegrityError:
            logger.debug(f"Job {job_id} was enqueued concurrently")
            return job_id

        logger.debug(f"Enqueued job {job_id} ({name}) on {queue}")
        return job_id

    def claim_next(self, queue: str, now: Optional[datetime] = None) -> Optional[Job]:
        """
        Atomically claim the next runnable job on a queue.

        Returns:
            Job if one is available, None otherwise
        """
        now = now or utcnow()
        job = (
            self.session.query(Job)
            .filter(
                Job.queue == queue,
                Job.status == JobStatus.PENDING.value,
                Job.run_after <= now,
            )
            .order_by(Job.run_after, Job.created_at)
            .with_for_update(skip_locked=True)
            .first()
        )

        if not job:
            return None

        job.status = JobStatus.PROCESSING.value
        job.started_at = now
        job.attempts += 1
        self.session.flush()

        logger.debug(f"Claimed job {job.id} (attempt {job.attempts}/{job.max_attempts})")
        return job

    def complete(
        self,
        job_id: str,
        success: bool,
        error: Optional[str] = None,
        result: Optional[dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> None:
        """
        Mark a job as completed, or schedule a retry with exponential backoff.

        Args:
            job_id: ID of the job
            success: Whether the handler succeeded
            error: Error message if failed
            result: Handler result to store on success
        """
        job = self.session.get(Job, job_id)
        if not job:
            logger.warning(f"Job {job_id} not found when trying to complete")
            return

        now = now or utcnow()
        job.completed_at = now

        if success:
            job.status = JobStatus.COMPLETED.value
            job.error_message = None
            job.result = result
            logger.info(f"Job {job_id} completed successfully")
        else:
            job.error_message = error
            if job.attempts >= job.max_attempts:
                job.status = JobStatus.FAILED.value
                logger.warning(f"Job {job_id} failed after {job.attempts} attempts: {error}")
            else:
                delay = job.backoff_seconds * 2 ** (job.attempts - 1)
                job.status = JobStatus.PENDING.value
                job.started_at = None
                job.completed_at = None
                job.run_after = now + timedelta(seconds=delay)
                logger.info(
                    f"Job {job_id} failed, retrying in {delay:.0f}s "
                    f"(attempt {job.attempts}/{job.max_attempts}): {error}"
                )

        self.session.flush()

    def get_stats(self, queue: Optional[str] = None) -> QueueStats:
        query = self.session.query(Job.status, func.count(Job.id))
        if queue:
            query = query.filter(Job.queue == queue)

        stats = QueueStats()
        for status, count in query.group_by(Job.status).all():
            if status == JobStatus.PENDING.value:
                stats.pending = count
            elif status == JobStatus.PROCESSING.value:
                stats.processing = count
            elif status == JobStatus.COMPLETED.value:
                stats.completed = count
            elif status == JobStatus.FAILED.value:
                stats.failed = count
            stats.total += count

        return stats

    def cleanup_stale_jobs(
        self, timeout_minutes: int = 30, now: Optional[datetime] = None
    ) -> int:
        """
        Reset jobs that have been processing for too long.

        This handles cases where a worker crashed mid-job.

        Returns:
            Number of jobs reset
        """
        threshold = (now or utcnow()) - timedelta(minutes=timeout_minutes)
        result = (
            self.session.query(Job)
            .filter(
                Job.status == JobStatus.PROCESSING.value,
                Job.started_at < threshold,
            )
            .update(
                {Job.status: JobStatus.PENDING.value, Job.started_at: None},
                synchronize_session=False,
            )
        )

        if result > 0:
            logger.warning(f"Reset {result} stale jobs")

        return result

    def purge_completed(self, days: int = 7, now: Optional[datetime] = None) -> int:
        """
        Delete finished jobs older than ``days``.

        Returns:
            Number of jobs deleted
        """
        threshold = (now or utcnow()) - timedelta(days=days)
        result = (
            self.session.query(Job)
            .filter(
                Job.status.in_([JobStatus.COMPLETED.value, JobStatus.FAILED.value]),
                Job.completed_at < threshold,
            )
            .delete(synchronize_session=False)
        )

        if result > 0:
            logger.info(f"Purged {result} finished jobs older than {days} days")

        return result
