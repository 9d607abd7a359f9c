"""
Attribution analysis job: fetch a commit, run detection, persist per-file rows.
"""

import logging
import uuid
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sentinel.analysis.detector import detect_ai
from sentinel.analysis.types import CommitData, DetectionResult, FileChange
from sentinel.db.repositories.attribution import AttributionRepository
from sentinel.db.repositories.code_event import CodeEventRepository
from sentinel.exceptions import SourceControlError
from sentinel.github.client import GitHubClient
from sentinel.models.db import CodeAttribution, CodeEvent
from sentinel.utils.clock import utcnow

logger = logging.getLogger(__name__)


def _resolve_pr_body(
    github: GitHubClient,
    event: Optional[CodeEvent],
    installation_id: int,
    owner: str,
    repo: str,
) -> Optional[str]:
    if event is None or event.pr_number is None:
        return None

    metadata = event.event_metadata or {}
    if "pr_body" in metadata:
        return metadata["pr_body"] or None

    try:
        pr = github.get_pull_request(installation_id, owner, repo, event.pr_number)
    except SourceControlError as e:
        logger.warning(f"Failed to fetch PR #{event.pr_number} details: {e}")
        return None
    return pr.body or None


def analyze_commit(
    session: Session, github: GitHubClient, payload: dict[str, Any]
) -> Optional[DetectionResult]:
    """
    Analyze one commit and store a CodeAttribution row per changed file.

    Idempotent: a commit that already has attributions is skipped, and rows
    inserted concurrently by another worker are absorbed by the unique
    ``(commit_sha, file_path)`` constraint.

    Args:
        session: Database session
        github: Source-control client
        payload: ``{repo_id, commit_sha, event_id, installation_id, owner, repo}``

    Returns:
        DetectionResult, or None if the commit was already analyzed

    Raises:
        SourceControlError: If the commit cannot be fetched (job is retried)
    """
    repo_id = uuid.UUID(str(payload["repo_id"]))
    commit_sha = payload["commit_sha"]
    installation_id = payload["installation_id"]
    owner = payload["owner"]
    repo = payload["repo"]

    attributions = AttributionRepository(session)
    if attributions.exists_for_commit(repo_id, commit_sha):
        logger.debug(f"Commit {commit_sha} already analyzed, skipping")
        return None

    details = github.get_commit(installation_id, owner, repo, commit_sha)

    event = None
    if payload.get("event_id"):
        event = CodeEventRepository(session).get(uuid.UUID(str(payload["event_id"])))

    commit = CommitData(
        sha=details.sha,
        message=details.message,
        author_login=details.author,
        timestamp=details.timestamp,
        files=[
            FileChange(
                path=f.filename,
                additions=f.additions,
                deletions=f.deletions,
                patch=f.patch,
            )
            for f in details.files
        ],
        pr_number=event.pr_number if event else None,
        pr_body=_resolve_pr_body(github, event, installation_id, owner, repo),
    )

    result = detect_ai(commit)
    signals = {"signals": [s.to_dict() for s in result.signals]}
    analyzed_at = utcnow()

    try:
        with session.begin_nested():
            for file in commit.files:
                session.add(
                    CodeAttribution(
                        repo_id=repo_id,
                        commit_sha=commit_sha,
                        file_path=file.path,
                        ai_confidence=round(result.confidence, 2),
                        detection_method=result.method,
                        detection_signals=signals,
                        risk_tier=result.risk_tier,
                        risk_score=round(result.risk_score, 2),
                        risk_explanation=result.explanation,
                        lines_added=file.additions,
                        lines_deleted=file.deletions,
                        analyzed_at=analyzed_at,
                    )
                )
    except IntegrityError:
        logger.info(f"Commit {commit_sha} was analyzed concurrently, keeping existing rows")
        return result

    logger.info(
        f"Analyzed commit {commit_sha}: confidence={result.confidence:.2f}, "
        f"tier={result.risk_tier.value}, files={len(commit.files)}"
    )
    return result
