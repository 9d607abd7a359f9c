"""
Daily metrics job: compute rollups under lock, then evaluate alerts.
"""

import logging
import time
from datetime import date
from typing import Any, Optional

from sqlalchemy.orm import Session

from sentinel.alerts.evaluator import evaluate_alerts_for_repo
from sentinel.jobs.common import resolve_repos
from sentinel.metrics.daily import compute_daily_metrics
from sentinel.metrics.lock import held_lock
from sentinel.metrics.timewindow import date_range, parse_date, yesterday

logger = logging.getLogger(__name__)

JOB_KIND = "compute-metrics"


def resolve_dates(payload: dict[str, Any], tz_name: str) -> list[date]:
    """
    Dates to compute: an explicit range, a single date, or yesterday.

    Raises:
        ValueError: If a date is malformed
    """
    start = payload.get("start_date")
    end = payload.get("end_date")
    if start and end:
        return date_range(parse_date(start), parse_date(end))
    if payload.get("date"):
        return [parse_date(payload["date"])]
    return [yesterday(tz_name)]


def compute_metrics_job(session: Session, payload: Optional[dict[str, Any]] = None) -> dict[str, int]:
    """
    Compute daily metrics for each repository and date, skipping keys whose
    lock is held elsewhere, then evaluate metric alerts once per repository.

    Args:
        session: Database session
        payload: Optional ``date``, ``start_date``/``end_date`` and ``repo_id``

    Returns:
        ``{"processed": n, "skipped": m}``
    """
    payload = payload or {}
    started = time.monotonic()
    repos = resolve_repos(session, payload.get("repo_id"))
    processed = 0
    skipped = 0

    for repo in repos:
        repo_id = repo.id
        dates = resolve_dates(payload, repo.timezone)
        for day in dates:
            with held_lock(session, JOB_KIND, repo_id, day) as lock:
                if lock is None:
                    logger.debug(f"Skipped metrics for repo {repo_id} on {day}: lock held")
                    skipped += 1
                    continue
                compute_daily_metrics(session, repo_id, day)
                session.commit()
                processed += 1
                if len(dates) > 1:
                    logger.info(f"Backfill progress for repo {repo_id}: {processed}/{len(dates)}")

        try:
            alerts = evaluate_alerts_for_repo(session, repo_id)
            session.commit()
            if alerts:
                logger.info(f"{len(alerts)} alerts triggered for repo {repo_id}")
        except Exception as e:
            session.rollback()
            logger.error(f"Alert evaluation failed for repo {repo_id}: {e}", exc_info=True)

    logger.info(
        f"Metrics computation complete: processed={processed}, skipped={skipped}, "
        f"duration={time.monotonic() - started:.1f}s"
    )
    return {"processed": processed, "skipped": skipped}
