"""
Tests for 30-day survival tracking.
"""

from sqlalchemy.orm import Session

from factories import add_attribution, utc
from sentinel.metrics.survival import track_survival
from sentinel.models.db import CodeAttribution, Repo

NOW = utc(2024, 7, 1, 19)  # noon July 1 in Los Angeles; cohort day is June 1
COHORT = utc(2024, 6, 1, 18)


class TestTrackSurvival:
    def test_marks_cohort(self, db_session: Session, sample_repo: Repo):
        untouched = add_attribution(db_session, sample_repo, "a" * 40, "src/auth/jwt.ts", 0.9, COHORT)
        still_active = add_attribution(db_session, sample_repo, "b" * 40, "src/ui/list.tsx", 0.8, COHORT)
        # A later change to the same file
        add_attribution(db_session, sample_repo, "c" * 40, "src/ui/list.tsx", 0.1, utc(2024, 6, 10))

        result = track_survival(db_session, sample_repo.id, now=NOW)

        assert result.checked == 2
        assert result.survived == 1
        assert result.failed == 1
        assert still_active.detection_signals["survived_30d"] is True
        assert untouched.detection_signals["survived_30d"] is False
        assert untouched.detection_signals["survival_checked_at"] == "2024-07-01"
        # Existing signal data is kept
        assert "signals" in untouched.detection_signals

    def test_non_ai_and_other_days_ignored(self, db_session: Session, sample_repo: Repo):
        human = add_attribution(db_session, sample_repo, "d" * 40, "src/a.ts", 0.2, COHORT)
        add_attribution(db_session, sample_repo, "e" * 40, "src/b.ts", 0.9, utc(2024, 6, 2, 18))

        result = track_survival(db_session, sample_repo.id, now=NOW)

        assert result.checked == 0
        assert "survived_30d" not in human.detection_signals

    def test_rerun_same_day_is_noop(self, db_session: Session, sample_repo: Repo):
        add_attribution(db_session, sample_repo, "f" * 40, "src/auth/jwt.ts", 0.9, COHORT)
        track_survival(db_session, sample_repo.id, now=NOW)
        db_session.commit()

        result = track_survival(db_session, sample_repo.id, now=NOW)

        assert result.checked == 0
        assert result.skipped == 1
        row = db_session.query(CodeAttribution).one()
        assert row.detection_signals["survival_checked_at"] == "2024-07-01"
