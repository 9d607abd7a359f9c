"""
Saturation job: measure review saturation and alert when it is high.
"""

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from sentinel.alerts.evaluator import evaluate_alerts_for_repo
from sentinel.alerts.rules import REVIEW_SATURATION_HIGH
from sentinel.jobs.common import resolve_repos
from sentinel.metrics.lock import held_lock
from sentinel.metrics.saturation import monitor_saturation
from sentinel.metrics.timewindow import today

logger = logging.getLogger(__name__)

JOB_KIND = "monitor-saturation"


def monitor_saturation_job(
    session: Session, payload: Optional[dict[str, Any]] = None
) -> dict[str, int]:
    """
    Returns:
        ``{"repos": n, "high_saturation": m}``
    """
    payload = payload or {}
    repos = resolve_repos(session, payload.get("repo_id"))
    high = 0

    for repo in repos:
        repo_id = repo.id
        with held_lock(session, JOB_KIND, repo_id, today(repo.timezone)) as lock:
            if lock is None:
                logger.debug(f"Skipped saturation for repo {repo_id}: lock held")
                continue
            result = monitor_saturation(session, repo_id)
            if result.is_high_saturation:
                high += 1
                evaluate_alerts_for_repo(
                    session,
                    repo_id,
                    saturation_data=result.as_context(),
                    rules=[REVIEW_SATURATION_HIGH],
                )
            session.commit()

    logger.info(f"Saturation monitoring complete: repos={len(repos)}, high={high}")
    return {"repos": len(repos), "high_saturation": high}
