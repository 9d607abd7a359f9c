"""
Code event repository.

Events are append-only; this repository only creates and reads them.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import distinct, func
from sqlalchemy.orm import Session

from sentinel.db.repositories.base import BaseRepository
from sentinel.models.db import CodeEvent, EventType


class CodeEventRepository(BaseRepository[CodeEvent]):
    """Repository for CodeEvent model."""

    def __init__(self, session: Session):
        super().__init__(CodeEvent, session)

    def _in_window(self, repo_id: uuid.UUID, event_type: EventType, start: datetime, end: datetime):
        return self.session.query(CodeEvent).filter(
            CodeEvent.repo_id == repo_id,
            CodeEvent.event_type == event_type,
            CodeEvent.timestamp >= start,
            CodeEvent.timestamp < end,
        )

    def get_in_window(
        self,
        repo_id: uuid.UUID,
        event_type: EventType,
        start: datetime,
        end: datetime,
    ) -> List[CodeEvent]:
        """
        Get events of one type whose timestamp falls in ``[start, end)``.

        Args:
            repo_id: Repository UUID
            event_type: Event type to select
            start: Inclusive window start (UTC)
            end: Exclusive window end (UTC)

        Returns:
            Events ordered by timestamp
        """
        return (
            self._in_window(repo_id, event_type, start, end)
            .order_by(CodeEvent.timestamp)
            .all()
        )

    def count_in_window(
        self,
        repo_id: uuid.UUID,
        event_type: EventType,
        start: datetime,
        end: datetime,
    ) -> int:
        return self._in_window(repo_id, event_type, start, end).count()

    def commit_shas_in_window(
        self, repo_id: uuid.UUID, start: datetime, end: datetime
    ) -> List[str]:
        rows = (
            self._in_window(repo_id, EventType.COMMIT, start, end)
            .with_entities(CodeEvent.commit_sha)
            .filter(CodeEvent.commit_sha.isnot(None))
            .all()
        )
        return [row[0] for row in rows]

    def distinct_authors_in_window(
        self,
        repo_id: uuid.UUID,
        event_type: EventType,
        start: datetime,
        end: datetime,
    ) -> int:
        result = (
            self._in_window(repo_id, event_type, start, end)
            .with_entities(func.count(distinct(CodeEvent.author_login)))
            .scalar()
        )
        return result or 0

    def earliest_pr_opened(
        self, repo_id: uuid.UUID, pr_number: int
    ) -> Optional[datetime]:
        """
        Earliest ``pr_opened`` timestamp for a pull request.

        Reopened pull requests record a second ``pr_opened`` event; the first
        one wins.
        """
        return (
            self.session.query(func.min(CodeEvent.timestamp))
            .filter(
                CodeEvent.repo_id == repo_id,
                CodeEvent.event_type == EventType.PR_OPENED,
                CodeEvent.pr_number == pr_number,
            )
            .scalar()
        )
