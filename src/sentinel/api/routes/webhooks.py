"""
GitHub webhook receiver.

Responds fast: the delivery is only verified, filtered and enqueued here.
All recording happens on the webhooks queue.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from sentinel.api.schemas import WebhookResponse
from sentinel.config import settings
from sentinel.db.connection import get_db
from sentinel.webhooks.router import WebhookOutcome, route_webhook

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/github", response_model=WebhookResponse, response_model_exclude_none=True)
async def receive_github_webhook(
    request: Request,
    session: Session = Depends(get_db),
    x_hub_signature_256: Optional[str] = Header(default=None, alias="X-Hub-Signature-256"),
    x_github_event: Optional[str] = Header(default=None, alias="X-GitHub-Event"),
    x_github_delivery: Optional[str] = Header(default=None, alias="X-GitHub-Delivery"),
) -> WebhookResponse:
    """Verify a GitHub delivery and queue it for processing."""
    raw_body = await request.body()

    decision = route_webhook(
        session,
        raw_body,
        x_hub_signature_256,
        x_github_event,
        x_github_delivery,
        settings.github_webhook_secret,
    )

    if decision.outcome == WebhookOutcome.REJECTED_AUTH:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid signature",
        )
    if decision.outcome == WebhookOutcome.MALFORMED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=decision.reason or "Malformed request",
        )
    if decision.outcome == WebhookOutcome.SKIPPED:
        return WebhookResponse(skipped=decision.reason)
    return WebhookResponse(queued=decision.job_id)
