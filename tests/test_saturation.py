"""
Tests for review saturation monitoring.
"""

from datetime import timedelta

import pytest
from sqlalchemy.orm import Session

from factories import add_event, utc
from sentinel.metrics.saturation import monitor_saturation
from sentinel.models.db import EventType, Repo

NOW = utc(2024, 6, 7, 12)


def open_prs(session: Session, repo: Repo, count: int) -> None:
    for n in range(count):
        add_event(session, repo, EventType.PR_OPENED, NOW - timedelta(days=6, hours=-n), pr_number=100 + n)


class TestMonitorSaturation:
    def test_overloaded_reviewer(self, db_session: Session, sample_repo: Repo):
        """One reviewer, 8h reviews, one PR a day: fully saturated."""
        open_prs(db_session, sample_repo, 7)
        add_event(db_session, sample_repo, EventType.PR_MERGED,
                  NOW - timedelta(days=6) + timedelta(hours=8), pr_number=100)
        add_event(db_session, sample_repo, EventType.PR_REVIEWED, NOW - timedelta(days=1),
                  pr_number=100, author="rev1")

        result = monitor_saturation(db_session, sample_repo.id, now=NOW)

        assert result.active_reviewers == 1
        assert result.avg_review_time_mins == pytest.approx(480)
        assert result.prs_per_day == pytest.approx(1.0)
        assert result.capacity_per_day == pytest.approx(1.0)
        assert result.saturation == pytest.approx(1.0)
        assert result.is_high_saturation is True
        assert result.as_context()["active_reviewers"] == 1

    def test_healthy_team(self, db_session: Session, sample_repo: Repo):
        open_prs(db_session, sample_repo, 7)
        add_event(db_session, sample_repo, EventType.PR_MERGED,
                  NOW - timedelta(days=6) + timedelta(hours=1), pr_number=100)
        for login in ("rev1", "rev2", "rev1"):
            add_event(db_session, sample_repo, EventType.PR_REVIEWED, NOW - timedelta(days=1),
                      pr_number=100, author=login)

        result = monitor_saturation(db_session, sample_repo.id, now=NOW)

        assert result.active_reviewers == 2
        assert result.capacity_per_day == pytest.approx(16.0)
        assert result.saturation == pytest.approx(1 / 16)
        assert result.is_high_saturation is False

    def test_no_reviews_means_zero_saturation(self, db_session: Session, sample_repo: Repo):
        open_prs(db_session, sample_repo, 3)

        result = monitor_saturation(db_session, sample_repo.id, now=NOW)

        assert result.saturation == 0.0
        assert result.capacity_per_day == 0.0
        assert result.is_high_saturation is False

    def test_events_before_window_ignored(self, db_session: Session, sample_repo: Repo):
        add_event(db_session, sample_repo, EventType.PR_REVIEWED, NOW - timedelta(days=8),
                  pr_number=1, author="old")

        assert monitor_saturation(db_session, sample_repo.id, now=NOW).active_reviewers == 0
