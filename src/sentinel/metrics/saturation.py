"""
Review saturation: demand for reviews versus reviewer capacity.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from sentinel.db.repositories.code_event import CodeEventRepository
from sentinel.metrics.review_time import average_review_minutes
from sentinel.models.db import EventType
from sentinel.utils.clock import utcnow

logger = logging.getLogger(__name__)

WINDOW_DAYS = 7
REVIEW_MINUTES_PER_REVIEWER_PER_DAY = 8 * 60
HIGH_SATURATION_THRESHOLD = 0.8


@dataclass
class SaturationResult:
    active_reviewers: int
    avg_review_time_mins: float
    prs_per_day: float
    capacity_per_day: float
    saturation: float
    is_high_saturation: bool

    def as_context(self) -> dict:
        return {
            "active_reviewers": self.active_reviewers,
            "avg_review_time_mins": self.avg_review_time_mins,
            "prs_per_day": self.prs_per_day,
            "capacity_per_day": self.capacity_per_day,
            "saturation": self.saturation,
            "is_high_saturation": self.is_high_saturation,
        }


def monitor_saturation(
    session: Session, repo_id: uuid.UUID, now: Optional[datetime] = None
) -> SaturationResult:
    """
    Measure review saturation over the trailing seven days.

    Capacity assumes each active reviewer spends a full working day reviewing
    at the observed average review time.

    Args:
        session: Database session
        repo_id: Repository UUID
        now: End of the window (defaults to current time)

    Returns:
        SaturationResult for the window
    """
    end = now or utcnow()
    start = end - timedelta(days=WINDOW_DAYS)
    # Include events stamped exactly at ``now``
    window_end = end + timedelta(microseconds=1)
    events = CodeEventRepository(session)

    reviewers = events.distinct_authors_in_window(
        repo_id, EventType.PR_REVIEWED, start, window_end
    )
    avg_review = average_review_minutes(session, repo_id, start, window_end)
    prs_per_day = (
        events.count_in_window(repo_id, EventType.PR_OPENED, start, window_end)
        / WINDOW_DAYS
    )

    capacity = 0.0
    saturation = 0.0
    if avg_review > 0 and reviewers > 0:
        capacity = reviewers * REVIEW_MINUTES_PER_REVIEWER_PER_DAY / avg_review
        saturation = prs_per_day / capacity if capacity > 0 else 0.0

    result = SaturationResult(
        active_reviewers=reviewers,
        avg_review_time_mins=avg_review,
        prs_per_day=prs_per_day,
        capacity_per_day=capacity,
        saturation=saturation,
        is_high_saturation=saturation > HIGH_SATURATION_THRESHOLD,
    )

    summary = (
        f"reviewers={reviewers}, review_mins={avg_review:.1f}, "
        f"prs_per_day={prs_per_day:.1f}, capacity={capacity:.1f}, "
        f"saturation={saturation:.2f}"
    )
    if result.is_high_saturation:
        logger.warning(f"Review saturation high for repo {repo_id}: {summary}")
    else:
        logger.info(f"Saturation check for repo {repo_id}: {summary}")

    return result
