"""
Tests for alert evaluation, deduplication and notification enqueueing.
"""

from datetime import date, timedelta

import pytest
from sqlalchemy.orm import Session

from factories import utc
from sentinel.alerts.evaluator import (
    evaluate_alerts_for_repo,
    is_duplicate,
    trigger_high_risk_deploy_alert,
    trigger_incident_ai_alert,
)
from sentinel.alerts.rules import REVIEW_SATURATION_HIGH
from sentinel.db.repositories.repo_metric import RepoMetricRepository
from sentinel.metrics.lock import acquire_lock
from sentinel.models.db import Alert, AlertSeverity, Job, JobLock, Repo, TimePeriod
from sentinel.queue.job_queue import NOTIFICATIONS

NOW = utc(2024, 6, 8, 10)
TODAY = date(2024, 6, 7)


def store_metrics(session: Session, repo: Repo, day: date, **values) -> None:
    row = {
        "total_commits": 10,
        "ai_commits": 0,
        "human_commits": 10,
        "ai_code_percentage": 0.0,
        "avg_review_time_mins": 0.0,
        "high_risk_file_count": 0,
        "incident_count": 0,
        "verification_tax_hours": 0.0,
    }
    row.update(values)
    RepoMetricRepository(session).upsert(repo.id, day, TimePeriod.DAY, row)


def notification_jobs(session: Session) -> list[Job]:
    return session.query(Job).filter(Job.queue == NOTIFICATIONS).all()


class TestEvaluateAlerts:
    def test_critical_ai_share(self, db_session: Session, sample_repo: Repo):
        """91% AI code raises exactly one critical alert and one notification."""
        store_metrics(db_session, sample_repo, TODAY, ai_code_percentage=91.0)

        alerts = evaluate_alerts_for_repo(db_session, sample_repo.id, now=NOW)

        assert [a.rule_name for a in alerts] == ["ai_code_critical"]
        alert = db_session.query(Alert).one()
        assert alert.severity == AlertSeverity.CRITICAL
        assert alert.channels == ["slack", "email"]
        assert alert.metric_value == 91.0
        assert alert.threshold == 90
        jobs = notification_jobs(db_session)
        assert len(jobs) == 1
        assert jobs[0].id == f"notify-{alert.id}"
        assert jobs[0].name == "send-notification"
        assert jobs[0].payload == {"alert_id": str(alert.id)}

    def test_spike_compares_with_a_week_earlier(self, db_session: Session, sample_repo: Repo):
        store_metrics(db_session, sample_repo, TODAY - timedelta(days=7), verification_tax_hours=40.0)
        store_metrics(db_session, sample_repo, TODAY, verification_tax_hours=65.0)

        alerts = evaluate_alerts_for_repo(db_session, sample_repo.id, now=NOW)

        assert [a.rule_name for a in alerts] == ["verification_tax_spike"]
        assert alerts[0].alert_metadata["increasePercent"] == pytest.approx(62.5)

    def test_deduplicated_within_24_hours(self, db_session: Session, sample_repo: Repo):
        store_metrics(db_session, sample_repo, TODAY, ai_code_percentage=91.0)

        evaluate_alerts_for_repo(db_session, sample_repo.id, now=NOW)
        again = evaluate_alerts_for_repo(db_session, sample_repo.id, now=NOW + timedelta(hours=23))

        assert again == []
        assert db_session.query(Alert).count() == 1
        assert len(notification_jobs(db_session)) == 1

    def test_fires_again_after_window(self, db_session: Session, sample_repo: Repo):
        store_metrics(db_session, sample_repo, TODAY, ai_code_percentage=91.0)

        evaluate_alerts_for_repo(db_session, sample_repo.id, now=NOW)
        later = evaluate_alerts_for_repo(db_session, sample_repo.id, now=NOW + timedelta(hours=25))

        assert len(later) == 1
        assert db_session.query(Alert).count() == 2

    def test_dedup_is_per_rule(self, db_session: Session, sample_repo: Repo):
        store_metrics(db_session, sample_repo, TODAY, ai_code_percentage=91.0)
        evaluate_alerts_for_repo(db_session, sample_repo.id, now=NOW)

        assert is_duplicate(db_session, sample_repo.id, "ai_code_critical", NOW)
        assert not is_duplicate(db_session, sample_repo.id, "ai_code_high", NOW)

    def test_no_metrics_no_alerts(self, db_session: Session, sample_repo: Repo):
        assert evaluate_alerts_for_repo(db_session, sample_repo.id, now=NOW) == []

    def test_unknown_repo(self, db_session: Session):
        import uuid

        assert evaluate_alerts_for_repo(db_session, uuid.uuid4(), now=NOW) == []

    def test_saturation_rule_only(self, db_session: Session, sample_repo: Repo):
        store_metrics(db_session, sample_repo, TODAY, ai_code_percentage=95.0)

        alerts = evaluate_alerts_for_repo(
            db_session,
            sample_repo.id,
            saturation_data={"saturation": 0.9, "active_reviewers": 2},
            rules=[REVIEW_SATURATION_HIGH],
            now=NOW,
        )

        assert [a.rule_name for a in alerts] == ["review_saturation_high"]


class TestEventAlerts:
    def test_high_risk_deploy(self, db_session: Session, sample_repo: Repo):
        files = ["src/auth/a.ts", "src/auth/b.ts", "src/auth/c.ts", "src/auth/d.ts"]

        alert = trigger_high_risk_deploy_alert(db_session, sample_repo.id, files, "abcdef1234567", NOW)

        assert alert.rule_name == "high_risk_deployed"
        assert alert.channels == ["slack", "email", "pagerduty"]
        assert "(+1 more)" in alert.message
        assert "abcdef1" in alert.message
        assert alert.alert_metadata == {"files": files, "commitSha": "abcdef1234567"}
        assert len(notification_jobs(db_session)) == 1

    def test_high_risk_deploy_deduplicated(self, db_session: Session, sample_repo: Repo):
        trigger_high_risk_deploy_alert(db_session, sample_repo.id, ["a.ts"], "1" * 40, NOW)

        assert trigger_high_risk_deploy_alert(
            db_session, sample_repo.id, ["b.ts"], "2" * 40, NOW + timedelta(hours=1)
        ) is None

    def test_concurrent_trigger_is_skipped(self, db_session: Session, sample_repo: Repo):
        """While another worker is raising the same rule, a second trigger persists nothing."""
        acquire_lock(db_session, "raise-alert", sample_repo.id, "high_risk_deployed")

        alert = trigger_high_risk_deploy_alert(db_session, sample_repo.id, ["a.ts"], "1" * 40, NOW)

        assert alert is None
        assert db_session.query(Alert).count() == 0
        assert notification_jobs(db_session) == []

    def test_alert_committed_before_lock_release(self, db_session: Session, sample_repo: Repo):
        trigger_high_risk_deploy_alert(db_session, sample_repo.id, ["a.ts"], "1" * 40, NOW)
        db_session.rollback()

        assert db_session.query(Alert).count() == 1
        assert db_session.query(JobLock).count() == 0

    def test_incident_alert(self, db_session: Session, sample_repo: Repo):
        alert = trigger_incident_ai_alert(db_session, sample_repo.id, "Checkout 500s", "inc-1", NOW)

        assert alert.rule_name == "incident_ai_attributed"
        assert "Checkout 500s" in alert.message
        assert alert.alert_metadata["incidentId"] == "inc-1"
