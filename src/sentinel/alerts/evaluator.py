"""
Alert evaluation: run rules, deduplicate, persist and enqueue notifications.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Optional, Sequence

from sqlalchemy.orm import Session

from sentinel.alerts.rules import (
    HIGH_RISK_DEPLOYED,
    INCIDENT_AI_ATTRIBUTED,
    METRICS_RULES,
    AlertRule,
    AlertTrigger,
    EvaluationContext,
)
from sentinel.config import settings
from sentinel.db.repositories.alert import AlertRepository
from sentinel.db.repositories.repo import RepoRepository
from sentinel.db.repositories.repo_metric import RepoMetricRepository
from sentinel.metrics.lock import held_lock
from sentinel.models.db import Alert
from sentinel.queue.job_queue import NOTIFICATIONS, JobQueue
from sentinel.utils.clock import utcnow

logger = logging.getLogger(__name__)

COMPARISON_DAYS = 7
RAISE_ALERT_LOCK = "raise-alert"


def is_duplicate(
    session: Session, repo_id: uuid.UUID, rule_name: str, now: Optional[datetime] = None
) -> bool:
    """Whether the rule already fired for this repository within the dedup window."""
    since = (now or utcnow()) - timedelta(hours=settings.alert_dedup_window_hours)
    return AlertRepository(session).get_recent(repo_id, rule_name, since) is not None


def _create_and_enqueue(
    session: Session,
    repo_id: uuid.UUID,
    rule: AlertRule,
    trigger: AlertTrigger,
    now: Optional[datetime] = None,
) -> Alert:
    alert = AlertRepository(session).create(
        repo_id=repo_id,
        rule_name=rule.name,
        severity=rule.severity,
        title=trigger.title,
        message=trigger.message,
        metric_value=round(trigger.metric_value, 2),
        threshold=round(trigger.threshold, 2),
        channels=list(rule.channels),
        alert_metadata=trigger.metadata,
        triggered_at=now or utcnow(),
    )
    JobQueue(session).enqueue(
        NOTIFICATIONS,
        "send-notification",
        {"alert_id": str(alert.id)},
        job_id=f"notify-{alert.id}",
    )
    logger.info(
        f"Alert {rule.name} triggered for repo {repo_id}: "
        f"severity={rule.severity.value}, value={trigger.metric_value:.2f}, "
        f"threshold={trigger.threshold:.2f}"
    )
    return alert


def _raise_if_new(
    session: Session,
    repo_id: uuid.UUID,
    rule: AlertRule,
    trigger: AlertTrigger,
    now: Optional[datetime] = None,
) -> Optional[Alert]:
    """
    Create the alert unless the rule fired for the repository within the
    dedup window.

    The check and insert run under a per-(repo, rule) lock whose release
    commits the new alert, so concurrent triggers persist a single row. A
    caller that finds the lock held skips: the holder raises or dedups it.
    """
    with held_lock(session, RAISE_ALERT_LOCK, repo_id, rule.name) as lock:
        if lock is None:
            logger.info(f"Alert {rule.name} for repo {repo_id} is being raised elsewhere")
            return None
        if is_duplicate(session, repo_id, rule.name, now):
            logger.debug(f"Alert {rule.name} for repo {repo_id} deduplicated")
            return None
        return _create_and_enqueue(session, repo_id, rule, trigger, now)


def build_context(
    session: Session,
    repo_id: uuid.UUID,
    saturation_data: Optional[dict[str, Any]] = None,
) -> Optional[EvaluationContext]:
    """
    Gather the latest daily rollup and the rollup from a week before it.

    Returns:
        EvaluationContext, or None if the repository does not exist
    """
    repo = RepoRepository(session).get(repo_id)
    if repo is None:
        return None

    metrics = RepoMetricRepository(session)
    current = metrics.get_latest(repo_id)
    previous = None
    if current is not None:
        previous = metrics.get_for_date(
            repo_id, current.date - timedelta(days=COMPARISON_DAYS)
        )

    return EvaluationContext(
        repo=repo,
        current_metrics=current,
        previous_metrics=previous,
        saturation_data=saturation_data,
    )


def evaluate_alerts_for_repo(
    session: Session,
    repo_id: uuid.UUID,
    saturation_data: Optional[dict[str, Any]] = None,
    rules: Sequence[AlertRule] = METRICS_RULES,
    now: Optional[datetime] = None,
) -> list[Alert]:
    """
    Evaluate metric rules for a repository.

    Each firing rule not already raised within the dedup window produces an
    Alert and a ``send-notification`` job.

    Args:
        session: Database session
        repo_id: Repository UUID
        saturation_data: Latest saturation reading, if any
        rules: Rules to evaluate
        now: Current time, for tests

    Returns:
        Alerts created by this evaluation
    """
    ctx = build_context(session, repo_id, saturation_data)
    if ctx is None:
        logger.warning(f"Repository {repo_id} not found, skipping alert evaluation")
        return []

    created = []
    for rule in rules:
        trigger = rule.evaluate(ctx)
        if trigger is None:
            continue
        alert = _raise_if_new(session, repo_id, rule, trigger, now)
        if alert is not None:
            created.append(alert)

    logger.info(f"Alert evaluation for repo {repo_id} complete: triggered={len(created)}")
    return created


def trigger_high_risk_deploy_alert(
    session: Session,
    repo_id: uuid.UUID,
    files: list[str],
    commit_sha: str,
    now: Optional[datetime] = None,
) -> Optional[Alert]:
    """Raise ``high_risk_deployed`` for a deploy containing T4 files."""
    shown = ", ".join(files[:3])
    if len(files) > 3:
        shown += f" (+{len(files) - 3} more)"
    trigger = AlertTrigger(
        title="High-Risk AI Code Deployed",
        message=(
            f"🔥 High-risk AI code deployed to production.\n\n"
            f"Files: {shown}\n\nCommit: {commit_sha[:7]}"
        ),
        metric_value=len(files),
        threshold=1,
        metadata={"files": files, "commitSha": commit_sha},
    )
    return _raise_if_new(session, repo_id, HIGH_RISK_DEPLOYED, trigger, now)


def trigger_incident_ai_alert(
    session: Session,
    repo_id: uuid.UUID,
    incident_title: str,
    incident_id: str,
    now: Optional[datetime] = None,
) -> Optional[Alert]:
    """Raise ``incident_ai_attributed`` for an incident blamed on AI code."""
    trigger = AlertTrigger(
        title="Incident Attributed to AI Code",
        message=(
            f"🚨 Production incident attributed to AI-generated code.\n\n"
            f"Incident: {incident_title}"
        ),
        metric_value=1,
        threshold=1,
        metadata={"incidentId": incident_id, "incidentTitle": incident_title},
    )
    return _raise_if_new(session, repo_id, INCIDENT_AI_ATTRIBUTED, trigger, now)
