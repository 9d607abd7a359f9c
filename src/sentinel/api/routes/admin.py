"""
Admin endpoints: manual metric jobs and incident recording.

All routes require the ``X-Admin-Key`` header.
"""

import logging
import time
import uuid
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from sentinel.api.auth import require_admin_key
from sentinel.api.schemas import IncidentCreate, IncidentResponse, QueuedJobResponse
from sentinel.db.connection import get_db
from sentinel.incidents import record_incident
from sentinel.metrics.timewindow import parse_date
from sentinel.queue.handlers import (
    COMPUTE_METRICS_DAILY,
    MONITOR_SATURATION_HOURLY,
    TRACK_SURVIVAL_WEEKLY,
)
from sentinel.queue.job_queue import SCHEDULED, JobQueue

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin_key)])

# action -> (job name, job id prefix)
METRIC_ACTIONS = {
    "compute": (COMPUTE_METRICS_DAILY, "manual-compute"),
    "survival": (TRACK_SURVIVAL_WEEKLY, "manual-survival"),
    "saturation": (MONITOR_SATURATION_HOURLY, "manual-saturation"),
}


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _validated_date(value: Optional[str], name: str) -> Optional[str]:
    if value is None:
        return None
    try:
        return parse_date(value).isoformat()
    except ValueError:
        raise _bad_request(f"Invalid {name}: {value!r} (expected YYYY-MM-DD)")


@router.post(
    "/metrics/{action}",
    response_model=QueuedJobResponse,
    response_model_by_alias=True,
)
def trigger_metrics_job(
    action: str,
    date: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    repo_id: Optional[str] = Query(None, alias="repoId"),
    session: Session = Depends(get_db),
) -> QueuedJobResponse:
    """
    Queue a metrics job on demand.

    ``compute`` accepts a single ``date`` or a ``startDate``/``endDate``
    range; every action accepts ``repoId`` to limit the run to one repository.
    """
    if action not in METRIC_ACTIONS:
        raise _bad_request(
            f"Unknown action {action!r}. Valid actions: {', '.join(METRIC_ACTIONS)}"
        )

    payload: dict[str, Any] = {}
    if repo_id is not None:
        try:
            payload["repo_id"] = str(uuid.UUID(repo_id))
        except ValueError:
            raise _bad_request(f"Invalid repoId: {repo_id!r}")

    if action == "compute":
        if (start_date is None) != (end_date is None):
            raise _bad_request("startDate and endDate must be given together")
        if start_date and end_date:
            payload["start_date"] = _validated_date(start_date, "startDate")
            payload["end_date"] = _validated_date(end_date, "endDate")
            if payload["start_date"] > payload["end_date"]:
                raise _bad_request("startDate must not be after endDate")
        elif date is not None:
            payload["date"] = _validated_date(date, "date")

    job_name, prefix = METRIC_ACTIONS[action]
    job_id = f"{prefix}-{int(time.time() * 1000)}"

    try:
        JobQueue(session).enqueue(SCHEDULED, job_name, payload, job_id=job_id)
    except Exception as e:
        logger.error(f"Failed to queue {action} job: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to queue job",
        )

    logger.info(f"Queued manual {action} job {job_id}: {payload}")
    return QueuedJobResponse(job_id=job_id)


@router.post(
    "/incidents",
    response_model=IncidentResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_incident(
    body: IncidentCreate,
    session: Session = Depends(get_db),
) -> IncidentResponse:
    """Record a production incident."""
    try:
        incident = record_incident(
            session,
            body.repo_id,
            body.title,
            body.severity,
            detected_at=body.detected_at,
            external_id=body.external_id,
            suspected_commit_sha=body.suspected_commit_sha,
            affected_files=body.affected_files,
            ai_attributed=body.ai_attributed,
            root_cause=body.root_cause,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return IncidentResponse.model_validate(incident)
