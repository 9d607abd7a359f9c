"""
Code attribution repository.
"""

import uuid
from datetime import datetime
from typing import Iterable, List

from sqlalchemy import distinct
from sqlalchemy.orm import Session

from sentinel.db.repositories.base import BaseRepository
from sentinel.models.db import CodeAttribution, RiskTier

AI_CONFIDENCE_THRESHOLD = 0.5


class AttributionRepository(BaseRepository[CodeAttribution]):
    """Repository for CodeAttribution model."""

    def __init__(self, session: Session):
        super().__init__(CodeAttribution, session)

    def exists_for_commit(self, repo_id: uuid.UUID, commit_sha: str) -> bool:
        return (
            self.session.query(CodeAttribution.id)
            .filter(
                CodeAttribution.repo_id == repo_id,
                CodeAttribution.commit_sha == commit_sha,
            )
            .first()
            is not None
        )

    def get_by_commit(self, repo_id: uuid.UUID, commit_sha: str) -> List[CodeAttribution]:
        return (
            self.session.query(CodeAttribution)
            .filter(
                CodeAttribution.repo_id == repo_id,
                CodeAttribution.commit_sha == commit_sha,
            )
            .order_by(CodeAttribution.file_path)
            .all()
        )

    def ai_commit_shas(self, repo_id: uuid.UUID, shas: Iterable[str]) -> set[str]:
        """
        Subset of ``shas`` having at least one attribution above the AI threshold.

        Args:
            repo_id: Repository UUID
            shas: Candidate commit SHAs

        Returns:
            Distinct SHAs counted as AI commits
        """
        shas = list(shas)
        if not shas:
            return set()
        rows = (
            self.session.query(distinct(CodeAttribution.commit_sha))
            .filter(
                CodeAttribution.repo_id == repo_id,
                CodeAttribution.commit_sha.in_(shas),
                CodeAttribution.ai_confidence > AI_CONFIDENCE_THRESHOLD,
            )
            .all()
        )
        return {row[0] for row in rows}

    def count_high_risk_in_window(
        self, repo_id: uuid.UUID, start: datetime, end: datetime
    ) -> int:
        return (
            self.session.query(CodeAttribution)
            .filter(
                CodeAttribution.repo_id == repo_id,
                CodeAttribution.analyzed_at >= start,
                CodeAttribution.analyzed_at < end,
                CodeAttribution.risk_tier.in_([RiskTier.T3_CORE, RiskTier.T4_NOVEL]),
            )
            .count()
        )

    def get_ai_cohort(
        self, repo_id: uuid.UUID, start: datetime, end: datetime
    ) -> List[CodeAttribution]:
        """AI-attributed rows analyzed within ``[start, end)``."""
        return (
            self.session.query(CodeAttribution)
            .filter(
                CodeAttribution.repo_id == repo_id,
                CodeAttribution.ai_confidence > AI_CONFIDENCE_THRESHOLD,
                CodeAttribution.analyzed_at >= start,
                CodeAttribution.analyzed_at < end,
            )
            .order_by(CodeAttribution.analyzed_at)
            .all()
        )

    def has_later_change(
        self, repo_id: uuid.UUID, file_path: str, after: datetime
    ) -> bool:
        """Whether any attribution for ``file_path`` was analyzed at or after ``after``."""
        return (
            self.session.query(CodeAttribution.id)
            .filter(
                CodeAttribution.repo_id == repo_id,
                CodeAttribution.file_path == file_path,
                CodeAttribution.analyzed_at >= after,
            )
            .first()
            is not None
        )

    def get_by_tier(
        self, repo_id: uuid.UUID, commit_sha: str, tier: RiskTier
    ) -> List[CodeAttribution]:
        return (
            self.session.query(CodeAttribution)
            .filter(
                CodeAttribution.repo_id == repo_id,
                CodeAttribution.commit_sha == commit_sha,
                CodeAttribution.risk_tier == tier,
            )
            .order_by(CodeAttribution.file_path)
            .all()
        )
