"""
Alert endpoints.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from sentinel.api.schemas import AcknowledgeResponse, AlertResponse
from sentinel.db.connection import get_db
from sentinel.db.repositories.alert import AlertRepository

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/{alert_id}/acknowledge", response_model=AcknowledgeResponse)
def acknowledge_alert(
    alert_id: str,
    x_actor: str = Header(default="anonymous", alias="X-Actor"),
    session: Session = Depends(get_db),
) -> AcknowledgeResponse:
    """Mark an alert as acknowledged by ``X-Actor``."""
    try:
        parsed_id = uuid.UUID(alert_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid alert ID",
        )

    repo = AlertRepository(session)
    alert = repo.get(parsed_id)
    if alert is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Alert not found",
        )

    repo.acknowledge(alert, x_actor)
    logger.info(f"Alert {alert_id} acknowledged by {x_actor}")
    return AcknowledgeResponse(alert=AlertResponse.model_validate(alert))
