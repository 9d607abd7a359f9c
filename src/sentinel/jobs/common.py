"""Helpers shared by the scheduled jobs."""

import uuid
from typing import Optional

from sqlalchemy.orm import Session

from sentinel.db.repositories.repo import RepoRepository
from sentinel.models.db import Repo


def resolve_repos(session: Session, repo_id: Optional[str] = None) -> list[Repo]:
    """A single repository when ``repo_id`` is given, else every active one."""
    repos = RepoRepository(session)
    if repo_id:
        repo = repos.get(uuid.UUID(str(repo_id)))
        return [repo] if repo else []
    return repos.get_active()
