"""
Repository metric rollups.
"""

import uuid
from datetime import date
from typing import Any, Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from sentinel.db.repositories.base import BaseRepository
from sentinel.models.db import RepoMetric, TimePeriod
from sentinel.utils.clock import utcnow


class RepoMetricRepository(BaseRepository[RepoMetric]):
    """Repository for RepoMetric model."""

    def __init__(self, session: Session):
        super().__init__(RepoMetric, session)

    def upsert(
        self,
        repo_id: uuid.UUID,
        metric_date: date,
        period: TimePeriod,
        values: dict[str, Any],
    ) -> None:
        """
        Insert or overwrite the rollup row for ``(repo_id, date, period)``.

        Uses INSERT ... ON CONFLICT DO UPDATE so concurrent recomputations of
        the same key converge on a single row.

        Args:
            repo_id: Repository UUID
            metric_date: Calendar date the rollup covers
            period: Rollup period
            values: Counter columns to write
        """
        row = dict(values)
        row["computed_at"] = utcnow()

        dialect = self.session.get_bind().dialect.name
        insert = sqlite.insert if dialect == "sqlite" else postgresql.insert

        stmt = insert(RepoMetric).values(
            id=uuid.uuid4(),
            repo_id=repo_id,
            date=metric_date,
            period=period,
            **row,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["repo_id", "date", "period"],
            set_=row,
        )
        self.session.execute(stmt)

    def get_for_date(
        self,
        repo_id: uuid.UUID,
        metric_date: date,
        period: TimePeriod = TimePeriod.DAY,
    ) -> Optional[RepoMetric]:
        return (
            self.session.query(RepoMetric)
            .execution_options(populate_existing=True)
            .filter(
                RepoMetric.repo_id == repo_id,
                RepoMetric.date == metric_date,
                RepoMetric.period == period,
            )
            .first()
        )

    def get_latest(
        self, repo_id: uuid.UUID, period: TimePeriod = TimePeriod.DAY
    ) -> Optional[RepoMetric]:
        """Most recent rollup row for a repository."""
        return (
            self.session.query(RepoMetric)
            .execution_options(populate_existing=True)
            .filter(RepoMetric.repo_id == repo_id, RepoMetric.period == period)
            .order_by(RepoMetric.date.desc())
            .first()
        )
