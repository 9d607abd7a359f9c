"""
Daily per-repository metric rollups.
"""

import logging
import uuid
from dataclasses import asdict, dataclass
from datetime import date

from sqlalchemy.orm import Session

from sentinel.db.repositories.attribution import AttributionRepository
from sentinel.db.repositories.code_event import CodeEventRepository
from sentinel.db.repositories.incident import IncidentRepository
from sentinel.db.repositories.repo import RepoRepository
from sentinel.db.repositories.repo_metric import RepoMetricRepository
from sentinel.metrics.review_time import average_review_minutes
from sentinel.metrics.timewindow import day_window
from sentinel.models.db import EventType, TimePeriod

logger = logging.getLogger(__name__)


@dataclass
class DailyMetrics:
    """Counters computed for one repository and calendar day."""

    total_commits: int = 0
    ai_commits: int = 0
    human_commits: int = 0
    ai_code_percentage: float = 0.0
    avg_review_time_mins: float = 0.0
    high_risk_file_count: int = 0
    incident_count: int = 0
    verification_tax_hours: float = 0.0

    def rounded(self) -> dict:
        values = asdict(self)
        for key in ("ai_code_percentage", "avg_review_time_mins", "verification_tax_hours"):
            values[key] = round(values[key], 2)
        return values


def compute_daily_metrics(
    session: Session, repo_id: uuid.UUID, day: date
) -> DailyMetrics:
    """
    Compute and upsert the ``day`` rollup for a repository.

    The window is the civil day in the repository's reporting timezone.
    Callers are expected to hold the ``compute-metrics`` lock for
    ``(repo_id, day)``.

    Args:
        session: Database session
        repo_id: Repository UUID
        day: Calendar date to compute

    Returns:
        The computed (unrounded) metrics

    Raises:
        ValueError: If the repository does not exist
    """
    repo = RepoRepository(session).get(repo_id)
    if repo is None:
        raise ValueError(f"Repository {repo_id} not found")

    window = day_window(day, repo.timezone)
    events = CodeEventRepository(session)
    attributions = AttributionRepository(session)

    shas = events.commit_shas_in_window(repo_id, window.start, window.end)
    total_commits = events.count_in_window(
        repo_id, EventType.COMMIT, window.start, window.end
    )
    ai_commits = len(attributions.ai_commit_shas(repo_id, shas))
    avg_review = average_review_minutes(session, repo_id, window.start, window.end)

    metrics = DailyMetrics(
        total_commits=total_commits,
        ai_commits=ai_commits,
        human_commits=max(0, total_commits - ai_commits),
        ai_code_percentage=(ai_commits / total_commits) * 100 if total_commits else 0.0,
        avg_review_time_mins=avg_review,
        high_risk_file_count=attributions.count_high_risk_in_window(
            repo_id, window.start, window.end
        ),
        incident_count=IncidentRepository(session).count_in_window(
            repo_id, window.start, window.end
        ),
        verification_tax_hours=(avg_review * ai_commits) / 60 if avg_review > 0 else 0.0,
    )

    RepoMetricRepository(session).upsert(
        repo_id, day, TimePeriod.DAY, metrics.rounded()
    )

    logger.info(
        f"Daily metrics for repo {repo_id} on {day}: "
        f"commits={metrics.total_commits}, ai={metrics.ai_commits}, "
        f"ai_pct={metrics.ai_code_percentage:.1f}, "
        f"review_mins={metrics.avg_review_time_mins:.1f}, "
        f"high_risk={metrics.high_risk_file_count}, "
        f"incidents={metrics.incident_count}"
    )
    return metrics
