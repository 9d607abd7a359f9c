"""
Notification dispatch: fan an alert out to its channels.

Channels are attempted independently; one channel failing does not stop the
others. The alert is marked sent after every attempt, and the job only fails
(and is retried) when no channel succeeded.
"""

import logging
import uuid
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from sentinel.db.repositories.alert import AlertRepository
from sentinel.db.repositories.repo import RepoRepository
from sentinel.exceptions import NotificationDeliveryError
from sentinel.notifications.base import Notifier
from sentinel.notifications.email import EmailNotifier
from sentinel.notifications.pagerduty import PagerDutyNotifier
from sentinel.notifications.slack import SlackNotifier
from sentinel.utils.clock import utcnow

logger = logging.getLogger(__name__)

SENT = "sent"
SKIPPED = "skipped"


def default_notifiers() -> dict[str, Notifier]:
    return {
        "slack": SlackNotifier(),
        "email": EmailNotifier(),
        "pagerduty": PagerDutyNotifier(),
    }


def dispatch_alert(
    session: Session,
    alert_id: uuid.UUID | str,
    notifiers: Mapping[str, Notifier],
) -> Optional[dict[str, str]]:
    """
    Deliver an alert to each of its channels.

    Unconfigured channels are logged and count as skipped. Unknown channel
    names count as failures. ``sent_at`` and ``delivery_status`` are
    committed before raising, so a retry of a fully failed dispatch is a
    no-op rather than a duplicate page.

    Args:
        session: Database session
        alert_id: Alert UUID
        notifiers: Channel name -> notifier

    Returns:
        Per-channel delivery status, or None if there was nothing to send

    Raises:
        NotificationDeliveryError: If every channel failed
    """
    alert = AlertRepository(session).get(uuid.UUID(str(alert_id)))
    if alert is None:
        logger.warning(f"Alert {alert_id} not found")
        return None

    if alert.sent_at is not None:
        logger.debug(f"Notification for alert {alert_id} already sent")
        return None

    repo = RepoRepository(session).get(alert.repo_id)
    if repo is None:
        logger.warning(f"Repository {alert.repo_id} for alert {alert_id} not found")
        return None

    status: dict[str, str] = {}
    failures: dict[str, str] = {}

    for channel in alert.channels or []:
        notifier = notifiers.get(channel)
        if notifier is None:
            logger.warning(f"Unknown notification channel {channel!r} for alert {alert_id}")
            failures[channel] = "unknown channel"
            status[channel] = "failed: unknown channel"
            continue

        if not notifier.is_configured():
            logger.warning(f"{channel} not configured, skipping notification for alert {alert_id}")
            status[channel] = SKIPPED
            continue

        try:
            notifier.send(alert, repo)
            status[channel] = SENT
        except Exception as e:
            logger.error(f"Notification via {channel} failed for alert {alert_id}: {e}")
            failures[channel] = str(e)
            status[channel] = f"failed: {e}"

    alert.sent_at = utcnow()
    alert.delivery_status = status
    session.commit()

    if failures and len(failures) == len(status):
        raise NotificationDeliveryError(str(alert_id), failures)

    if failures:
        logger.warning(
            f"Alert {alert_id} partially delivered: "
            f"failed={sorted(failures)}, status={status}"
        )
    else:
        logger.info(f"Notification sent for alert {alert_id}: {status}")
    return status


def send_notification(
    session: Session, payload: dict[str, Any], notifiers: Mapping[str, Notifier]
) -> dict[str, Any]:
    """Job handler entry point for the ``notifications`` queue."""
    status = dispatch_alert(session, payload["alert_id"], notifiers)
    return {"delivery_status": status}
