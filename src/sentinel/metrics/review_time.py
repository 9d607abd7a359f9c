"""
Pull-request review latency.
"""

import uuid
from datetime import datetime

from sqlalchemy.orm import Session

from sentinel.db.repositories.code_event import CodeEventRepository
from sentinel.models.db import EventType
from sentinel.utils.clock import ensure_utc


def average_review_minutes(
    session: Session, repo_id: uuid.UUID, start: datetime, end: datetime
) -> float:
    """
    Mean minutes from first open to merge for PRs merged in ``[start, end)``.

    PRs with no recorded open event, or with a non-positive duration, are
    ignored. Returns 0.0 when nothing qualifies.
    """
    events = CodeEventRepository(session)
    durations = []

    for merged in events.get_in_window(repo_id, EventType.PR_MERGED, start, end):
        if merged.pr_number is None:
            continue
        opened_at = events.earliest_pr_opened(repo_id, merged.pr_number)
        if opened_at is None:
            continue
        minutes = (
            ensure_utc(merged.timestamp) - ensure_utc(opened_at)
        ).total_seconds() / 60
        if minutes > 0:
            durations.append(minutes)

    if not durations:
        return 0.0
    return sum(durations) / len(durations)
