"""
Alert repository.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from sentinel.db.repositories.base import BaseRepository
from sentinel.models.db import Alert
from sentinel.utils.clock import utcnow


class AlertRepository(BaseRepository[Alert]):
    """Repository for Alert model."""

    def __init__(self, session: Session):
        super().__init__(Alert, session)

    def get_recent(
        self, repo_id: uuid.UUID, rule_name: str, since: datetime
    ) -> Optional[Alert]:
        """
        Latest alert for ``(repo_id, rule_name)`` triggered at or after ``since``.

        Used for deduplication: a hit means the rule already fired recently.
        """
        return (
            self.session.query(Alert)
            .filter(
                Alert.repo_id == repo_id,
                Alert.rule_name == rule_name,
                Alert.triggered_at >= since,
            )
            .order_by(Alert.triggered_at.desc())
            .first()
        )

    def acknowledge(self, alert: Alert, actor: str) -> Alert:
        alert.acknowledged_at = utcnow()
        alert.acknowledged_by = actor
        self.session.flush()
        return alert
