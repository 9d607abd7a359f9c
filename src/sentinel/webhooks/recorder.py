"""
Webhook job handler: turn GitHub deliveries into CodeEvents and analysis jobs.
"""

import logging
import uuid
from typing import Any, Optional

from sqlalchemy.orm import Session

from sentinel.alerts.evaluator import trigger_high_risk_deploy_alert
from sentinel.db.repositories.attribution import AttributionRepository
from sentinel.db.repositories.code_event import CodeEventRepository
from sentinel.db.repositories.repo import RepoRepository
from sentinel.github.client import GitHubClient
from sentinel.models.db import CodeEvent, EventType, Repo, RiskTier
from sentinel.queue.job_queue import ANALYSIS, JobQueue
from sentinel.utils.clock import parse_timestamp, utcnow

logger = logging.getLogger(__name__)


class EventRecorder:
    """
    Records source-control activity for a tracked repository.

    Each ``handle_*`` method corresponds to one GitHub event type and is
    called with the delivery payload from a ``webhooks`` job.
    """

    def __init__(self, session: Session, github: GitHubClient):
        self.session = session
        self.github = github
        self.events = CodeEventRepository(session)
        self.queue = JobQueue(session)

    def process(self, job_payload: dict[str, Any]) -> dict[str, Any]:
        """
        Dispatch a webhook job to the matching handler.

        Args:
            job_payload: ``{delivery_id, event, installation_id, repo_id, payload, received_at}``

        Returns:
            Summary stored as the job result
        """
        event = job_payload["event"]
        repo = RepoRepository(self.session).get(uuid.UUID(str(job_payload["repo_id"])))
        if repo is None:
            logger.warning(
                f"Repository {job_payload['repo_id']} not found, "
                f"skipping delivery {job_payload.get('delivery_id')}"
            )
            return {"skipped": "repo not found"}

        installation_id = job_payload["installation_id"]
        payload = job_payload.get("payload") or {}

        handlers = {
            "push": self.handle_push,
            "pull_request": self.handle_pull_request,
            "pull_request_review": self.handle_review,
            "deployment_status": self.handle_deployment_status,
        }
        handler = handlers.get(event)
        if handler is None:
            logger.debug(f"No recorder for event {event!r}")
            return {"skipped": "unsupported event"}

        recorded = handler(repo, installation_id, payload)
        logger.info(
            f"Processed delivery {job_payload.get('delivery_id')} ({event}): "
            f"events={recorded}"
        )
        return {"events": recorded}

    def _record(
        self,
        repo: Repo,
        event_type: EventType,
        author: str,
        timestamp: Optional[str],
        commit_sha: Optional[str] = None,
        pr_number: Optional[int] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> CodeEvent:
        return self.events.create(
            repo_id=repo.id,
            event_type=event_type,
            timestamp=parse_timestamp(timestamp) or utcnow(),
            commit_sha=commit_sha,
            pr_number=pr_number,
            author_login=author or "unknown",
            event_metadata=metadata or {},
        )

    def _enqueue_analysis(
        self, repo: Repo, installation_id: int, event: CodeEvent, sha: str
    ) -> str:
        return self.queue.enqueue(
            ANALYSIS,
            "analyze-commit",
            {
                "repo_id": str(repo.id),
                "commit_sha": sha,
                "event_id": str(event.id),
                "installation_id": installation_id,
                "owner": repo.owner,
                "repo": repo.name,
            },
            job_id=f"analyze:{event.id}:{sha}",
        )

    def handle_push(
        self, repo: Repo, installation_id: int, payload: dict[str, Any]
    ) -> int:
        commits = payload.get("commits") or []
        for commit in commits:
            author = commit.get("author") or {}
            event = self._record(
                repo,
                EventType.COMMIT,
                author.get("username") or author.get("name") or "unknown",
                commit.get("timestamp"),
                commit_sha=commit["id"],
                metadata={"message": commit.get("message", ""), "ref": payload.get("ref")},
            )
            self._enqueue_analysis(repo, installation_id, event, commit["id"])

        logger.info(f"Recorded {len(commits)} commits for {repo.full_name}")
        return len(commits)

    def handle_pull_request(
        self, repo: Repo, installation_id: int, payload: dict[str, Any]
    ) -> int:
        action = payload.get("action")
        pr = payload.get("pull_request") or {}
        number = payload.get("number") or pr.get("number")

        if action in ("opened", "reopened"):
            event_type = EventType.PR_OPENED
            timestamp = pr.get("created_at") if action == "opened" else pr.get("updated_at")
        elif action == "closed" and pr.get("merged_at"):
            event_type = EventType.PR_MERGED
            timestamp = pr.get("merged_at")
        else:
            logger.debug(f"Skipping pull_request action {action!r}")
            return 0

        metadata: dict[str, Any] = {"title": pr.get("title"), "action": action}
        if event_type == EventType.PR_MERGED:
            metadata["merge_commit_sha"] = pr.get("merge_commit_sha")
        if event_type == EventType.PR_OPENED:
            body = pr.get("body")
            if body is None:
                body = self.github.get_pull_request(
                    installation_id, repo.owner, repo.name, number
                ).body
            metadata["pr_body"] = body or ""

        event = self._record(
            repo,
            event_type,
            (pr.get("user") or {}).get("login"),
            timestamp,
            pr_number=number,
            metadata=metadata,
        )

        if event_type == EventType.PR_OPENED:
            shas = self.github.list_pr_commits(installation_id, repo.owner, repo.name, number)
            for sha in shas:
                self._enqueue_analysis(repo, installation_id, event, sha)
            logger.info(f"Queued {len(shas)} commits of PR #{number} for analysis")

        return 1

    def handle_review(
        self, repo: Repo, installation_id: int, payload: dict[str, Any]
    ) -> int:
        if payload.get("action") != "submitted":
            return 0

        review = payload.get("review") or {}
        self._record(
            repo,
            EventType.PR_REVIEWED,
            (review.get("user") or {}).get("login"),
            review.get("submitted_at"),
            pr_number=(payload.get("pull_request") or {}).get("number"),
            metadata={"action": "submitted", "state": review.get("state")},
        )
        return 1

    def handle_deployment_status(
        self, repo: Repo, installation_id: int, payload: dict[str, Any]
    ) -> int:
        status = payload.get("deployment_status") or {}
        if status.get("state") != "success":
            return 0

        deployment = payload.get("deployment") or {}
        sha = deployment.get("sha")
        environment = deployment.get("environment")
        self._record(
            repo,
            EventType.DEPLOY,
            (deployment.get("creator") or {}).get("login"),
            status.get("created_at"),
            commit_sha=sha,
            metadata={"environment": environment},
        )
        logger.info(f"Deploy of {sha} to {environment} recorded for {repo.full_name}")

        if sha:
            high_risk = AttributionRepository(self.session).get_by_tier(
                repo.id, sha, RiskTier.T4_NOVEL
            )
            if high_risk:
                trigger_high_risk_deploy_alert(
                    self.session, repo.id, [a.file_path for a in high_risk], sha
                )
        return 1


def process_webhook(
    session: Session, github: GitHubClient, job_payload: dict[str, Any]
) -> dict[str, Any]:
    """Job handler entry point for the ``webhooks`` queue."""
    return EventRecorder(session, github).process(job_payload)
