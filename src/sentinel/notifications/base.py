"""
Common notifier plumbing.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from sentinel.config import settings
from sentinel.exceptions import ChannelDeliveryError
from sentinel.models.db import Alert, Repo

logger = logging.getLogger(__name__)

SEVERITY_EMOJI = {
    "critical": "🚨",
    "warning": "⚠️",
    "info": "ℹ️",
}

SEVERITY_COLOR = {
    "critical": "#dc2626",
    "warning": "#f59e0b",
    "info": "#3b82f6",
}


def severity_value(alert: Alert) -> str:
    return getattr(alert.severity, "value", alert.severity)


class Notifier(ABC):
    """
    Base class for a notification channel.

    Subclasses set ``channel`` and implement ``is_configured`` and ``send``.
    ``send`` raises ChannelDeliveryError on a rejected delivery.
    """

    channel = ""

    def __init__(self, http: Optional[httpx.Client] = None, app_url: Optional[str] = None):
        self.http = http or httpx.Client(timeout=settings.notification_timeout)
        self.app_url = (app_url or settings.app_url).rstrip("/")

    @abstractmethod
    def is_configured(self) -> bool:
        """Whether the channel has the credentials it needs to deliver."""

    @abstractmethod
    def send(self, alert: Alert, repo: Repo) -> None:
        """Deliver one alert; raise ChannelDeliveryError when rejected."""

    def close(self) -> None:
        self.http.close()

    def _post(self, url: str, json: dict[str, Any], headers: Optional[dict[str, str]] = None) -> httpx.Response:
        try:
            response = self.http.post(url, json=json, headers=headers)
        except httpx.HTTPError as e:
            raise ChannelDeliveryError(self.channel, str(e)) from e

        if response.status_code >= 400:
            raise ChannelDeliveryError(
                self.channel,
                f"API error: {response.status_code} {response.text[:200]}",
                status_code=response.status_code,
            )
        return response
