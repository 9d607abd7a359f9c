"""
PagerDuty Events API v2 notifier.
"""

import logging
from typing import Any, Optional

import httpx

from sentinel.config import settings
from sentinel.models.db import Alert, Repo
from sentinel.notifications.base import Notifier, severity_value
from sentinel.utils.clock import ensure_utc

logger = logging.getLogger(__name__)


def dedup_key(alert: Alert, repo: Repo) -> str:
    return f"{alert.rule_name}-{repo.id}"


def build_event(alert: Alert, repo: Repo, routing_key: str, app_url: str) -> dict[str, Any]:
    dashboard_url = f"{app_url}/dashboard/alerts"
    return {
        "routing_key": routing_key,
        "event_action": "trigger",
        "dedup_key": dedup_key(alert, repo),
        "payload": {
            "summary": f"[{repo.full_name}] {alert.title}",
            "severity": severity_value(alert),
            "source": f"sentinel-{repo.owner}-{repo.name}",
            "timestamp": ensure_utc(alert.triggered_at).isoformat(),
            "custom_details": {
                "message": alert.message,
                "rule": alert.rule_name,
                "metric_value": alert.metric_value,
                "threshold": alert.threshold,
                "repository": repo.full_name,
                "dashboard_url": dashboard_url,
            },
        },
        "links": [{"href": dashboard_url, "text": "View in Sentinel Dashboard"}],
    }


class PagerDutyNotifier(Notifier):
    channel = "pagerduty"

    def __init__(
        self,
        routing_key: Optional[str] = None,
        events_url: Optional[str] = None,
        http: Optional[httpx.Client] = None,
        app_url: Optional[str] = None,
    ):
        super().__init__(http, app_url)
        self.routing_key = (
            routing_key if routing_key is not None else settings.pagerduty_routing_key
        )
        self.events_url = events_url or settings.pagerduty_events_url

    def is_configured(self) -> bool:
        return bool(self.routing_key)

    def send(self, alert: Alert, repo: Repo) -> None:
        event = build_event(alert, repo, self.routing_key, self.app_url)
        logger.debug(f"Sending PagerDuty event {event['dedup_key']} for alert {alert.id}")
        response = self._post(self.events_url, event)
        logger.info(
            f"PagerDuty alert sent for alert {alert.id}: "
            f"status={response.json().get('status')}"
        )
