"""
Incident recording.

Incidents come from the admin API (or an external incident tool calling it).
An incident blamed on AI-authored code raises ``incident_ai_attributed``.
"""

import logging
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from sentinel.alerts.evaluator import trigger_incident_ai_alert
from sentinel.db.repositories.incident import IncidentRepository
from sentinel.db.repositories.repo import RepoRepository
from sentinel.models.db import Incident, IncidentSeverity
from sentinel.utils.clock import utcnow

logger = logging.getLogger(__name__)


def record_incident(
    session: Session,
    repo_id: uuid.UUID,
    title: str,
    severity: IncidentSeverity,
    detected_at: Optional[datetime] = None,
    external_id: Optional[str] = None,
    suspected_commit_sha: Optional[str] = None,
    affected_files: Optional[list[str]] = None,
    ai_attributed: Optional[bool] = None,
    root_cause: Optional[str] = None,
) -> Incident:
    """
    Store an incident and raise the attribution alert when applicable.

    Raises:
        ValueError: If the repository does not exist
    """
    if RepoRepository(session).get(repo_id) is None:
        raise ValueError(f"Repository {repo_id} not found")

    incident = IncidentRepository(session).create(
        repo_id=repo_id,
        title=title,
        severity=severity,
        detected_at=detected_at or utcnow(),
        external_id=external_id,
        suspected_commit_sha=suspected_commit_sha,
        affected_files=affected_files or [],
        ai_attributed=ai_attributed,
        root_cause=root_cause,
    )
    logger.info(f"Recorded incident {incident.id} ({severity.value}) for repo {repo_id}")

    if ai_attributed:
        trigger_incident_ai_alert(session, repo_id, title, str(incident.id))

    session.commit()
    return incident
