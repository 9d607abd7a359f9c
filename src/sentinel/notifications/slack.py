"""
Slack incoming-webhook notifier.
"""

import logging
from typing import Any, Optional

import httpx

from sentinel.config import settings
from sentinel.models.db import Alert, Repo
from sentinel.notifications.base import (
    SEVERITY_COLOR,
    SEVERITY_EMOJI,
    Notifier,
    severity_value,
)

logger = logging.getLogger(__name__)


def build_slack_payload(alert: Alert, repo: Repo, app_url: str) -> dict[str, Any]:
    """Attachment with a severity-coloured bar, header, body, context and buttons."""
    severity = severity_value(alert)
    emoji = SEVERITY_EMOJI.get(severity, "📢")
    blocks = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": f"{emoji} Sentinel Alert", "emoji": True},
        },
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": f"*{alert.title}*\n\n{alert.message}"},
        },
        {
            "type": "context",
            "elements": [
                {"type": "mrkdwn", "text": f"*Repository:* {repo.full_name}"},
                {"type": "mrkdwn", "text": f"*Severity:* {severity.upper()}"},
                {"type": "mrkdwn", "text": f"*Rule:* {alert.rule_name}"},
            ],
        },
        {
            "type": "actions",
            "elements": [
                {
                    "type": "button",
                    "text": {"type": "plain_text", "text": "View Dashboard"},
                    "url": f"{app_url}/dashboard",
                },
                {
                    "type": "button",
                    "text": {"type": "plain_text", "text": "View Alerts"},
                    "url": f"{app_url}/dashboard/alerts",
                },
            ],
        },
    ]
    return {
        "attachments": [
            {"color": SEVERITY_COLOR.get(severity, "#6b7280"), "blocks": blocks}
        ]
    }


class SlackNotifier(Notifier):
    channel = "slack"

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        http: Optional[httpx.Client] = None,
        app_url: Optional[str] = None,
    ):
        super().__init__(http, app_url)
        self.webhook_url = webhook_url if webhook_url is not None else settings.slack_webhook_url

    def is_configured(self) -> bool:
        return bool(self.webhook_url)

    def send(self, alert: Alert, repo: Repo) -> None:
        logger.debug(f"Sending Slack notification for alert {alert.id} ({repo.full_name})")
        self._post(self.webhook_url, build_slack_payload(alert, repo, self.app_url))
        logger.info(f"Slack notification sent for alert {alert.id}")
