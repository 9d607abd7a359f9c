"""
Lease-style mutual exclusion keyed by job kind, repository and date.

Locks are rows in ``job_locks``: acquisition is an insert that only one
caller can win, release deletes the row only for the token that created it.
Expired rows are removed by the next acquirer so a crashed holder cannot
block a key for longer than its TTL.
"""

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Generator, Optional

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sentinel.config import settings
from sentinel.models.db import JobLock
from sentinel.utils.clock import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LockHandle:
    """Proof of lock ownership."""

    key: str
    token: str


def lock_key(job_kind: str, repo_id: uuid.UUID | str, day: date | str) -> str:
    return f"lock:{job_kind}:{repo_id}:{day}"


def acquire_lock(
    session: Session,
    job_kind: str,
    repo_id: uuid.UUID | str,
    day: date | str,
    ttl_seconds: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Optional[LockHandle]:
    """
    Try to take the lock for ``(job_kind, repo_id, day)``.

    Commits the session so other workers observe the lock immediately.

    Args:
        session: Database session
        job_kind: Kind of job, e.g. ``compute-metrics``
        repo_id: Repository UUID
        day: Date the job covers
        ttl_seconds: Lease length (defaults to settings.lock_ttl_seconds)
        now: Current time, for tests

    Returns:
        LockHandle if acquired, None if another holder owns an unexpired lease
    """
    now = now or utcnow()
    ttl = ttl_seconds if ttl_seconds is not None else settings.lock_ttl_seconds
    key = lock_key(job_kind, repo_id, day)
    token = uuid.uuid4().hex

    # Take over leases abandoned by crashed holders
    session.execute(
        delete(JobLock).where(JobLock.key == key, JobLock.expires_at <= now)
    )

    try:
        with session.begin_nested():
            session.add(
                JobLock(
                    key=key,
                    token=token,
                    acquired_at=now,
                    expires_at=now + timedelta(seconds=ttl),
                )
            )
    except IntegrityError:
        session.commit()
        logger.info(f"Lock {key} is held by another worker")
        return None

    session.commit()
    logger.debug(f"Acquired lock {key}")
    return LockHandle(key=key, token=token)


def release_lock(session: Session, handle: LockHandle) -> bool:
    """
    Release a lock if ``handle`` still owns it.

    A stale or foreign token is a no-op.

    Returns:
        True if the lock row was deleted
    """
    result = session.execute(
        delete(JobLock).where(
            JobLock.key == handle.key, JobLock.token == handle.token
        )
    )
    session.commit()
    released = result.rowcount == 1
    if not released:
        logger.warning(f"Lock {handle.key} was not held by this token on release")
    return released


@contextmanager
def held_lock(
    session: Session,
    job_kind: str,
    repo_id: uuid.UUID | str,
    day: date | str,
    ttl_seconds: Optional[int] = None,
) -> Generator[Optional[LockHandle], None, None]:
    """
    Context manager around acquire/release.

    Yields None when the lock is contended; the body decides what to do.
    If the body raises, the session is rolled back before the lock is
    released and the original exception propagates.

    Example:
        >>> with held_lock(session, "compute-metrics", repo.id, day) as lock:
        >>>     if lock is None:
        >>>         return
        >>>     compute_daily_metrics(session, repo.id, day)
    """
    handle = acquire_lock(session, job_kind, repo_id, day, ttl_seconds)
    try:
        yield handle
    except Exception:
        # A failed statement leaves the transaction unusable until rolled back
        session.rollback()
        raise
    finally:
        if handle is not None:
            release_lock(session, handle)
