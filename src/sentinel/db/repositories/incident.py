"""
Incident repository.
"""

import uuid
from datetime import datetime

from sqlalchemy.orm import Session

from sentinel.db.repositories.base import BaseRepository
from sentinel.models.db import Incident


class IncidentRepository(BaseRepository[Incident]):
    """Repository for Incident model."""

    def __init__(self, session: Session):
        super().__init__(Incident, session)

    def count_in_window(
        self, repo_id: uuid.UUID, start: datetime, end: datetime
    ) -> int:
        return (
            self.session.query(Incident)
            .filter(
                Incident.repo_id == repo_id,
                Incident.detected_at >= start,
                Incident.detected_at < end,
            )
            .count()
        )
