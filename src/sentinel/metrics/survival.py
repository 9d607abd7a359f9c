"""
Thirty-day survival tracking for AI-attributed files.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from sentinel.db.repositories.attribution import AttributionRepository
from sentinel.db.repositories.repo import RepoRepository
from sentinel.metrics.timewindow import day_window, days_ago, today

logger = logging.getLogger(__name__)

COHORT_AGE_DAYS = 30


@dataclass
class SurvivalResult:
    checked: int = 0
    survived: int = 0
    failed: int = 0
    skipped: int = 0


def track_survival(
    session: Session, repo_id: uuid.UUID, now: Optional[datetime] = None
) -> SurvivalResult:
    """
    Mark the 30-day-old AI cohort with a survival flag.

    A row survived if the same file path received a later attribution after
    the cohort day. Rows already checked today are skipped, so re-running
    the job on the same day is a no-op.

    Args:
        session: Database session
        repo_id: Repository UUID
        now: Current time, for tests

    Returns:
        Counts of checked, survived, failed and skipped rows

    Raises:
        ValueError: If the repository does not exist
    """
    repo = RepoRepository(session).get(repo_id)
    if repo is None:
        raise ValueError(f"Repository {repo_id} not found")

    cohort_day = days_ago(COHORT_AGE_DAYS, repo.timezone, now)
    check_day = today(repo.timezone, now).isoformat()
    window = day_window(cohort_day, repo.timezone)
    attributions = AttributionRepository(session)
    result = SurvivalResult()

    for row in attributions.get_ai_cohort(repo_id, window.start, window.end):
        signals = row.detection_signals or {}
        if signals.get("survival_checked_at") == check_day:
            result.skipped += 1
            continue

        result.checked += 1
        survived = attributions.has_later_change(repo_id, row.file_path, window.end)
        if survived:
            result.survived += 1
        else:
            result.failed += 1

        # Reassign so the JSON column is flagged dirty
        row.detection_signals = {
            **signals,
            "survival_checked_at": check_day,
            "survived_30d": survived,
        }

    session.flush()
    logger.info(
        f"Survival tracking for repo {repo_id} (cohort {cohort_day}): "
        f"checked={result.checked}, survived={result.survived}, "
        f"failed={result.failed}, skipped={result.skipped}"
    )
    return result
