"""
GitHub REST API client.

Thin httpx wrapper exposing the three calls the pipeline needs: commit
details with per-file patches, pull request details, and the commit list of a
pull request.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

import httpx

from sentinel.config import settings
from sentinel.exceptions import SourceControlError
from sentinel.github.tokens import AppTokenFetcher, InstallationTokenCache
from sentinel.utils.clock import parse_timestamp, utcnow

logger = logging.getLogger(__name__)


@dataclass
class CommitFile:
    filename: str
    additions: int = 0
    deletions: int = 0
    patch: Optional[str] = None


@dataclass
class CommitDetails:
    sha: str
    message: str
    author: str
    timestamp: datetime
    files: list[CommitFile] = field(default_factory=list)


@dataclass
class PullRequestDetails:
    number: int
    title: str
    body: Optional[str]
    author: str


class GitHubClient:
    """
    Client for the GitHub REST API.

    Authenticates either with a static token or, when GitHub App credentials
    are configured, with cached per-installation tokens.
    """

    def __init__(
        self,
        http: Optional[httpx.Client] = None,
        token: Optional[str] = None,
        token_cache: Optional[InstallationTokenCache] = None,
    ):
        self._http = http or httpx.Client(
            base_url=settings.github_api_url,
            timeout=settings.github_timeout,
            headers={
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
        )
        self._token = token if token is not None else settings.github_token
        self._token_cache = token_cache
        if self._token_cache is None and not self._token:
            if settings.github_app_id and settings.github_app_private_key:
                self._token_cache = InstallationTokenCache(
                    AppTokenFetcher(
                        settings.github_app_id,
                        settings.github_app_private_key,
                        self._http,
                    )
                )
            else:
                logger.warning("GitHub credentials not configured")

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _auth_header(self, installation_id: int) -> dict[str, str]:
        if self._token:
            return {"Authorization": f"Bearer {self._token}"}
        if self._token_cache is None:
            raise SourceControlError("GitHub App not configured")
        return {"Authorization": f"Bearer {self._token_cache.get(installation_id)}"}

    def _get(self, installation_id: int, path: str, **params: Any) -> Any:
        try:
            response = self._http.get(
                path, params=params or None, headers=self._auth_header(installation_id)
            )
        except httpx.HTTPError as e:
            raise SourceControlError(f"GitHub request {path} failed: {e}") from e

        if response.status_code >= 400:
            if response.status_code == 401 and self._token_cache is not None:
                self._token_cache.invalidate(installation_id)
            raise SourceControlError(
                f"GitHub request {path} returned {response.status_code}",
                status_code=response.status_code,
            )
        return response.json()

    def get_commit(
        self, installation_id: int, owner: str, repo: str, sha: str
    ) -> CommitDetails:
        """
        Fetch a commit with its changed files and patches.

        Raises:
            SourceControlError: If the request fails
        """
        data = self._get(installation_id, f"/repos/{owner}/{repo}/commits/{sha}")
        commit = data.get("commit") or {}
        commit_author = commit.get("author") or {}
        return CommitDetails(
            sha=data["sha"],
            message=commit.get("message") or "",
            author=(data.get("author") or {}).get("login")
            or commit_author.get("name")
            or "unknown",
            timestamp=parse_timestamp(commit_author.get("date")) or utcnow(),
            files=[
                CommitFile(
                    filename=f["filename"],
                    additions=f.get("additions", 0),
                    deletions=f.get("deletions", 0),
                    patch=f.get("patch"),
                )
                for f in data.get("files") or []
            ],
        )

    def get_pull_request(
        self, installation_id: int, owner: str, repo: str, number: int
    ) -> PullRequestDetails:
        data = self._get(installation_id, f"/repos/{owner}/{repo}/pulls/{number}")
        return PullRequestDetails(
            number=data["number"],
            title=data.get("title") or "",
            body=data.get("body"),
            author=(data.get("user") or {}).get("login") or "unknown",
        )

    def list_pr_commits(
        self, installation_id: int, owner: str, repo: str, number: int
    ) -> list[str]:
        """SHAs of the commits in a pull request (first 100)."""
        data = self._get(
            installation_id,
            f"/repos/{owner}/{repo}/pulls/{number}/commits",
            per_page=100,
        )
        return [c["sha"] for c in data]
