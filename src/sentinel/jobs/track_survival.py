"""
Survival job: flag the 30-day-old AI cohort of each repository.
"""

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from sentinel.jobs.common import resolve_repos
from sentinel.metrics.lock import held_lock
from sentinel.metrics.survival import track_survival
from sentinel.metrics.timewindow import today

logger = logging.getLogger(__name__)

JOB_KIND = "track-survival"


def track_survival_job(
    session: Session, payload: Optional[dict[str, Any]] = None
) -> dict[str, int]:
    """
    Returns:
        ``{"repos": n, "total_checked": m}``
    """
    payload = payload or {}
    repos = resolve_repos(session, payload.get("repo_id"))
    total_checked = 0

    for repo in repos:
        repo_id = repo.id
        with held_lock(session, JOB_KIND, repo_id, today(repo.timezone)) as lock:
            if lock is None:
                logger.debug(f"Skipped survival for repo {repo_id}: lock held")
                continue
            result = track_survival(session, repo_id)
            session.commit()
            total_checked += result.checked

    logger.info(f"Survival tracking complete: repos={len(repos)}, checked={total_checked}")
    return {"repos": len(repos), "total_checked": total_checked}
