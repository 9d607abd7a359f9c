"""
Tests for notification dispatch.
"""

import uuid
from unittest.mock import MagicMock

import pytest
from sqlalchemy.orm import Session

from factories import utc
from sentinel.exceptions import ChannelDeliveryError, NotificationDeliveryError
from sentinel.models.db import Alert, AlertSeverity, Repo
from sentinel.notifications.base import Notifier
from sentinel.notifications.dispatcher import dispatch_alert, send_notification


def make_notifier(channel: str, configured: bool = True, error: bool = False) -> MagicMock:
    notifier = MagicMock(spec=Notifier)
    notifier.channel = channel
    notifier.is_configured.return_value = configured
    if error:
        notifier.send.side_effect = ChannelDeliveryError(channel, "API error: 500")
    return notifier


@pytest.fixture
def alert(db_session: Session, sample_repo: Repo) -> Alert:
    alert = Alert(
        repo_id=sample_repo.id,
        rule_name="high_risk_deployed",
        severity=AlertSeverity.CRITICAL,
        title="High-Risk AI Code Deployed",
        message="Files: src/auth/jwt.ts",
        metric_value=1,
        threshold=1,
        channels=["slack", "email", "pagerduty"],
        triggered_at=utc(2024, 6, 8, 10),
    )
    db_session.add(alert)
    db_session.commit()
    return alert


class TestDispatchAlert:
    def test_all_channels_sent(self, db_session: Session, alert: Alert):
        notifiers = {c: make_notifier(c) for c in ("slack", "email", "pagerduty")}

        status = dispatch_alert(db_session, alert.id, notifiers)

        assert status == {"slack": "sent", "email": "sent", "pagerduty": "sent"}
        assert alert.sent_at is not None
        assert alert.delivery_status == status
        for notifier in notifiers.values():
            notifier.send.assert_called_once()

    def test_partial_failure_does_not_raise(self, db_session: Session, alert: Alert):
        notifiers = {
            "slack": make_notifier("slack", error=True),
            "email": make_notifier("email"),
            "pagerduty": make_notifier("pagerduty"),
        }

        status = dispatch_alert(db_session, alert.id, notifiers)

        assert status["slack"].startswith("failed: ")
        assert status["email"] == "sent"
        assert alert.sent_at is not None

    def test_all_channels_failed_raises_after_marking_sent(
        self, db_session: Session, alert: Alert
    ):
        notifiers = {c: make_notifier(c, error=True) for c in ("slack", "email", "pagerduty")}

        with pytest.raises(NotificationDeliveryError) as exc:
            dispatch_alert(db_session, alert.id, notifiers)

        assert set(exc.value.failures) == {"slack", "email", "pagerduty"}
        db_session.expire_all()
        stored = db_session.get(Alert, alert.id)
        assert stored.sent_at is not None
        assert all(v.startswith("failed") for v in stored.delivery_status.values())

    def test_unconfigured_channels_skipped(self, db_session: Session, alert: Alert):
        notifiers = {
            "slack": make_notifier("slack"),
            "email": make_notifier("email", configured=False),
            "pagerduty": make_notifier("pagerduty", configured=False),
        }

        status = dispatch_alert(db_session, alert.id, notifiers)

        assert status == {"slack": "sent", "email": "skipped", "pagerduty": "skipped"}
        notifiers["email"].send.assert_not_called()

    def test_nothing_configured_is_not_a_failure(self, db_session: Session, alert: Alert):
        notifiers = {c: make_notifier(c, configured=False) for c in ("slack", "email", "pagerduty")}

        status = dispatch_alert(db_session, alert.id, notifiers)

        assert set(status.values()) == {"skipped"}

    def test_already_sent_is_noop(self, db_session: Session, alert: Alert):
        notifiers = {c: make_notifier(c) for c in ("slack", "email", "pagerduty")}
        dispatch_alert(db_session, alert.id, notifiers)

        assert dispatch_alert(db_session, alert.id, notifiers) is None
        notifiers["slack"].send.assert_called_once()

    def test_missing_alert(self, db_session: Session):
        assert dispatch_alert(db_session, uuid.uuid4(), {}) is None

    def test_job_handler(self, db_session: Session, alert: Alert):
        notifiers = {c: make_notifier(c) for c in ("slack", "email", "pagerduty")}

        result = send_notification(db_session, {"alert_id": str(alert.id)}, notifiers)

        assert result["delivery_status"]["pagerduty"] == "sent"
