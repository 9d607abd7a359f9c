"""
Tests for daily metric rollups.
"""

from datetime import date

import pytest
from sqlalchemy.orm import Session

from factories import add_attribution, add_event, utc
from sentinel.db.repositories.repo_metric import RepoMetricRepository
from sentinel.metrics.daily import compute_daily_metrics
from sentinel.metrics.review_time import average_review_minutes
from sentinel.models.db import EventType, Incident, IncidentSeverity, Repo, RepoMetric, RiskTier

DAY = date(2024, 6, 1)  # 07:00Z June 1 .. 07:00Z June 2 in Los Angeles


@pytest.fixture
def active_day(db_session: Session, sample_repo: Repo) -> Repo:
    """Four commits (two AI), one merged PR, one incident on DAY."""
    for i, sha in enumerate(["a" * 40, "b" * 40, "c" * 40, "d" * 40]):
        add_event(db_session, sample_repo, EventType.COMMIT, utc(2024, 6, 1, 15 + i), commit_sha=sha)

    add_attribution(db_session, sample_repo, "a" * 40, "src/auth/jwt.ts", 0.9,
                    utc(2024, 6, 1, 16), tier=RiskTier.T4_NOVEL)
    add_attribution(db_session, sample_repo, "a" * 40, "src/auth/jwt.test.ts", 0.9,
                    utc(2024, 6, 1, 16), tier=RiskTier.T1_BOILERPLATE)
    add_attribution(db_session, sample_repo, "b" * 40, "src/billing/charge.ts", 0.6,
                    utc(2024, 6, 1, 17), tier=RiskTier.T3_CORE)
    add_attribution(db_session, sample_repo, "c" * 40, "src/ui/list.tsx", 0.2,
                    utc(2024, 6, 1, 18), tier=RiskTier.T2_GLUE)

    add_event(db_session, sample_repo, EventType.PR_OPENED, utc(2024, 6, 1, 10), pr_number=1)
    add_event(db_session, sample_repo, EventType.PR_MERGED, utc(2024, 6, 1, 12), pr_number=1)

    db_session.add(
        Incident(
            repo_id=sample_repo.id,
            title="Checkout down",
            severity=IncidentSeverity.SEV2,
            detected_at=utc(2024, 6, 1, 20),
        )
    )
    db_session.commit()
    return sample_repo


class TestComputeDailyMetrics:
    def test_counts(self, db_session: Session, active_day: Repo):
        metrics = compute_daily_metrics(db_session, active_day.id, DAY)

        assert metrics.total_commits == 4
        assert metrics.ai_commits == 2
        assert metrics.human_commits == 2
        assert metrics.ai_code_percentage == 50.0
        assert metrics.avg_review_time_mins == 120.0
        assert metrics.high_risk_file_count == 2
        assert metrics.incident_count == 1
        assert metrics.verification_tax_hours == pytest.approx(4.0)

    def test_row_stored(self, db_session: Session, active_day: Repo):
        compute_daily_metrics(db_session, active_day.id, DAY)

        row = RepoMetricRepository(db_session).get_for_date(active_day.id, DAY)
        assert row.total_commits == 4
        assert row.ai_code_percentage == 50.0
        assert row.verification_tax_hours == 4.0

    def test_recompute_is_idempotent(self, db_session: Session, active_day: Repo):
        """Recomputing the same day leaves a single identical row."""
        compute_daily_metrics(db_session, active_day.id, DAY)
        first = RepoMetricRepository(db_session).get_for_date(active_day.id, DAY)
        snapshot = {
            c: getattr(first, c)
            for c in ("total_commits", "ai_commits", "ai_code_percentage",
                      "avg_review_time_mins", "high_risk_file_count",
                      "incident_count", "verification_tax_hours")
        }

        compute_daily_metrics(db_session, active_day.id, DAY)

        rows = db_session.query(RepoMetric).filter_by(repo_id=active_day.id).all()
        assert len(rows) == 1
        assert {c: getattr(rows[0], c) for c in snapshot} == snapshot

    def test_recompute_picks_up_late_events(self, db_session: Session, active_day: Repo):
        compute_daily_metrics(db_session, active_day.id, DAY)
        add_event(db_session, active_day, EventType.COMMIT, utc(2024, 6, 2, 6), commit_sha="e" * 40)

        compute_daily_metrics(db_session, active_day.id, DAY)

        row = RepoMetricRepository(db_session).get_for_date(active_day.id, DAY)
        assert row.total_commits == 5
        assert row.ai_code_percentage == 40.0

    def test_events_outside_local_day_excluded(self, db_session: Session, sample_repo: Repo):
        # 06:59Z is still May 31 in Los Angeles; 07:00Z June 2 is June 2
        add_event(db_session, sample_repo, EventType.COMMIT, utc(2024, 6, 1, 6, 59), commit_sha="1" * 40)
        add_event(db_session, sample_repo, EventType.COMMIT, utc(2024, 6, 1, 7), commit_sha="2" * 40)
        add_event(db_session, sample_repo, EventType.COMMIT, utc(2024, 6, 2, 7), commit_sha="3" * 40)

        metrics = compute_daily_metrics(db_session, sample_repo.id, DAY)

        assert metrics.total_commits == 1

    def test_empty_day(self, db_session: Session, sample_repo: Repo):
        metrics = compute_daily_metrics(db_session, sample_repo.id, DAY)

        assert metrics.total_commits == 0
        assert metrics.ai_code_percentage == 0
        assert metrics.verification_tax_hours == 0

    def test_unknown_repo(self, db_session: Session):
        import uuid

        with pytest.raises(ValueError):
            compute_daily_metrics(db_session, uuid.uuid4(), DAY)


class TestReviewTime:
    def test_reopened_pr_uses_first_open(self, db_session: Session, sample_repo: Repo):
        add_event(db_session, sample_repo, EventType.PR_OPENED, utc(2024, 6, 1, 8), pr_number=5)
        add_event(db_session, sample_repo, EventType.PR_OPENED, utc(2024, 6, 1, 11), pr_number=5)
        add_event(db_session, sample_repo, EventType.PR_MERGED, utc(2024, 6, 1, 12), pr_number=5)

        minutes = average_review_minutes(
            db_session, sample_repo.id, utc(2024, 6, 1), utc(2024, 6, 2)
        )

        assert minutes == 240.0

    def test_merge_without_open_ignored(self, db_session: Session, sample_repo: Repo):
        add_event(db_session, sample_repo, EventType.PR_MERGED, utc(2024, 6, 1, 12), pr_number=6)

        assert average_review_minutes(
            db_session, sample_repo.id, utc(2024, 6, 1), utc(2024, 6, 2)
        ) == 0.0
