"""
Webhook routing: authenticate, filter and enqueue GitHub deliveries.
"""

import enum
import json
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from sentinel.db.repositories.repo import RepoRepository
from sentinel.queue.job_queue import WEBHOOKS, JobQueue
from sentinel.utils.clock import utcnow
from sentinel.webhooks.signature import verify_signature

logger = logging.getLogger(__name__)

SUPPORTED_EVENTS = frozenset(
    {"push", "pull_request", "pull_request_review", "deployment_status"}
)


class WebhookOutcome(str, enum.Enum):
    REJECTED_AUTH = "rejected_auth"
    MALFORMED = "malformed"
    SKIPPED = "skipped"
    ACCEPTED = "accepted"


@dataclass
class WebhookDecision:
    outcome: WebhookOutcome
    reason: Optional[str] = None
    job_id: Optional[str] = None


def route_webhook(
    session: Session,
    raw_body: bytes,
    signature: Optional[str],
    event: Optional[str],
    delivery_id: Optional[str],
    secret: str,
) -> WebhookDecision:
    """
    Decide what to do with a delivery and enqueue it if accepted.

    Checks run in order: signature, event type, delivery id and JSON body,
    repository-level payload, tracked and active repository. Redelivery of
    the same delivery id yields the same job without creating a second one.

    Args:
        session: Database session
        raw_body: Exact request bytes
        signature: ``X-Hub-Signature-256`` header
        event: ``X-GitHub-Event`` header
        delivery_id: ``X-GitHub-Delivery`` header
        secret: Webhook secret

    Returns:
        WebhookDecision describing the outcome
    """
    if not verify_signature(raw_body, signature, secret):
        logger.warning(f"Invalid webhook signature for delivery {delivery_id}")
        return WebhookDecision(WebhookOutcome.REJECTED_AUTH, reason="invalid signature")

    if not event or event not in SUPPORTED_EVENTS:
        logger.debug(f"Skipping unsupported event {event!r}")
        return WebhookDecision(WebhookOutcome.SKIPPED, reason="unsupported event")

    if not delivery_id:
        return WebhookDecision(WebhookOutcome.MALFORMED, reason="missing delivery id")

    try:
        payload = json.loads(raw_body)
    except (UnicodeDecodeError, ValueError):
        logger.warning(f"Invalid JSON payload for delivery {delivery_id}")
        return WebhookDecision(WebhookOutcome.MALFORMED, reason="invalid json")

    if not isinstance(payload, dict):
        return WebhookDecision(WebhookOutcome.MALFORMED, reason="invalid json")

    installation = payload.get("installation")
    repository = payload.get("repository")
    if not (
        isinstance(installation, dict)
        and isinstance(repository, dict)
        and installation.get("id")
        and repository.get("id")
    ):
        logger.debug(f"Delivery {delivery_id} is not a repo-level event")
        return WebhookDecision(WebhookOutcome.SKIPPED, reason="not repo event")

    installation_id = installation["id"]
    github_repo_id = repository["id"]

    repo = RepoRepository(session).get_by_github_id(installation_id, github_repo_id)
    if repo is None:
        logger.debug(f"Repository {github_repo_id} not tracked")
        return WebhookDecision(WebhookOutcome.SKIPPED, reason="untracked repo")
    if not repo.is_active:
        logger.debug(f"Repository {repo.id} inactive")
        return WebhookDecision(WebhookOutcome.SKIPPED, reason="repo inactive")

    job_id = JobQueue(session).enqueue(
        WEBHOOKS,
        event,
        {
            "delivery_id": delivery_id,
            "event": event,
            "installation_id": installation_id,
            "repo_id": str(repo.id),
            "payload": payload,
            "received_at": utcnow().isoformat(),
        },
        job_id=delivery_id,
    )

    logger.info(f"Webhook {delivery_id} ({event}) queued for repo {repo.id}")
    return WebhookDecision(WebhookOutcome.ACCEPTED, job_id=job_id)
