"""
Job handler registry: queue name -> job name -> handler.
"""

from functools import partial
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from sentinel.analysis.analyzer import analyze_commit
from sentinel.github.client import GitHubClient
from sentinel.jobs.compute_metrics import compute_metrics_job
from sentinel.jobs.monitor_saturation import monitor_saturation_job
from sentinel.jobs.track_survival import track_survival_job
from sentinel.notifications.base import Notifier
from sentinel.notifications.dispatcher import default_notifiers, send_notification
from sentinel.queue.job_queue import ANALYSIS, NOTIFICATIONS, SCHEDULED, WEBHOOKS
from sentinel.queue.worker import JobHandler
from sentinel.webhooks.recorder import process_webhook
from sentinel.webhooks.router import SUPPORTED_EVENTS

ANALYZE_COMMIT = "analyze-commit"
SEND_NOTIFICATION = "send-notification"
COMPUTE_METRICS_DAILY = "compute-metrics-daily"
TRACK_SURVIVAL_WEEKLY = "track-survival-weekly"
MONITOR_SATURATION_HOURLY = "monitor-saturation-hourly"


def _analyze(
    github: GitHubClient, session: Session, payload: dict[str, Any]
) -> Optional[dict[str, Any]]:
    result = analyze_commit(session, github, payload)
    if result is None:
        return {"skipped": "already analyzed"}
    return {
        "confidence": round(result.confidence, 2),
        "method": result.method.value,
        "risk_tier": result.risk_tier.value,
    }


def build_handlers(
    github: GitHubClient, notifiers: Optional[Mapping[str, Notifier]] = None
) -> dict[str, dict[str, JobHandler]]:
    """
    Wire every job the workers can run to its implementation.

    Args:
        github: Shared source-control client
        notifiers: Channel name -> notifier (defaults to the configured ones)
    """
    notifiers = notifiers if notifiers is not None else default_notifiers()

    def webhook_handler(session: Session, payload: dict[str, Any]) -> dict[str, Any]:
        return process_webhook(session, github, payload)

    return {
        WEBHOOKS: {event: webhook_handler for event in SUPPORTED_EVENTS},
        ANALYSIS: {ANALYZE_COMMIT: partial(_analyze, github)},
        NOTIFICATIONS: {
            SEND_NOTIFICATION: lambda session, payload: send_notification(
                session, payload, notifiers
            )
        },
        SCHEDULED: {
            COMPUTE_METRICS_DAILY: compute_metrics_job,
            TRACK_SURVIVAL_WEEKLY: track_survival_job,
            MONITOR_SATURATION_HOURLY: monitor_saturation_job,
        },
    }

