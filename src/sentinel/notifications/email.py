"""
Email notifier using the Resend HTTP API.
"""

import html
import logging
from typing import Optional

import httpx

from sentinel.config import settings
from sentinel.models.db import Alert, Repo
from sentinel.notifications.base import (
    SEVERITY_COLOR,
    SEVERITY_EMOJI,
    Notifier,
    severity_value,
)
from sentinel.utils.clock import ensure_utc

logger = logging.getLogger(__name__)

EMAIL_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; background: #18181b; color: #fafafa; padding: 24px;">
  <div style="max-width: 600px; margin: 0 auto; background: #27272a; border-radius: 8px; border: 1px solid #3f3f46; overflow: hidden;">
    <div style="background: {color}; padding: 16px 24px;">
      <h1 style="margin: 0; font-size: 18px; color: white;">{emoji} Sentinel Alert</h1>
    </div>
    <div style="padding: 24px;">
      <h2 style="margin: 0 0 12px 0; font-size: 20px; color: #fafafa;">{title}</h2>
      <p style="margin: 0 0 24px 0; color: #a1a1aa; line-height: 1.6; white-space: pre-line;">{message}</p>
      <table style="width: 100%; border-collapse: collapse; margin-bottom: 24px;">
        <tr><td style="padding: 8px 0; color: #71717a;">Repository</td><td style="padding: 8px 0; text-align: right;">{repository}</td></tr>
        <tr><td style="padding: 8px 0; color: #71717a;">Severity</td><td style="padding: 8px 0; text-align: right; text-transform: uppercase;">{severity}</td></tr>
        <tr><td style="padding: 8px 0; color: #71717a;">Rule</td><td style="padding: 8px 0; text-align: right; font-family: monospace;">{rule}</td></tr>
        <tr><td style="padding: 8px 0; color: #71717a;">Triggered</td><td style="padding: 8px 0; text-align: right;">{triggered}</td></tr>
      </table>
      <a href="{dashboard_url}" style="display: inline-block; background: #3b82f6; color: white; padding: 12px 24px; border-radius: 6px; text-decoration: none; font-weight: 500;">View Dashboard</a>
    </div>
    <div style="padding: 16px 24px; background: #18181b; border-top: 1px solid #3f3f46;">
      <p style="margin: 0; font-size: 12px; color: #71717a;">Sent by Sentinel AI Code Safety Platform</p>
    </div>
  </div>
</body>
</html>"""


def render_email(alert: Alert, repo: Repo, app_url: str) -> str:
    severity = severity_value(alert)
    return EMAIL_TEMPLATE.format(
        color=SEVERITY_COLOR.get(severity, "#6b7280"),
        emoji=SEVERITY_EMOJI.get(severity, "📢"),
        title=html.escape(alert.title),
        message=html.escape(alert.message),
        repository=html.escape(repo.full_name),
        severity=severity,
        rule=html.escape(alert.rule_name),
        triggered=ensure_utc(alert.triggered_at).isoformat(),
        dashboard_url=f"{app_url}/dashboard/alerts",
    )


class EmailNotifier(Notifier):
    channel = "email"

    def __init__(
        self,
        api_key: Optional[str] = None,
        to_address: Optional[str] = None,
        from_address: Optional[str] = None,
        api_url: Optional[str] = None,
        http: Optional[httpx.Client] = None,
        app_url: Optional[str] = None,
    ):
        super().__init__(http, app_url)
        self.api_key = api_key if api_key is not None else settings.resend_api_key
        self.to_address = to_address if to_address is not None else settings.alert_email_to
        self.from_address = from_address or settings.alert_email_from
        self.api_url = api_url or settings.resend_api_url

    def is_configured(self) -> bool:
        return bool(self.api_key and self.to_address)

    def send(self, alert: Alert, repo: Repo) -> None:
        emoji = SEVERITY_EMOJI.get(severity_value(alert), "📢")
        logger.debug(f"Sending email alert {alert.id} to {self.to_address}")
        self._post(
            self.api_url,
            {
                "from": self.from_address,
                "to": self.to_address,
                "subject": f"{emoji} {alert.title}",
                "html": render_email(alert, repo, self.app_url),
            },
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        logger.info(f"Email alert sent for alert {alert.id}")
