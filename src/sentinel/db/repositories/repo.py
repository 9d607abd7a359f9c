"""
Tracked repository lookups.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from sentinel.db.repositories.base import BaseRepository
from sentinel.models.db import Repo


class RepoRepository(BaseRepository[Repo]):
    """Repository for Repo model."""

    def __init__(self, session: Session):
        super().__init__(Repo, session)

    def get_by_github_id(self, installation_id: int, github_id: int) -> Optional[Repo]:
        """
        Find a tracked repository by its App installation and GitHub id.

        Args:
            installation_id: GitHub App installation id
            github_id: GitHub repository id

        Returns:
            Repo if tracked, None otherwise
        """
        return (
            self.session.query(Repo)
            .filter(
                Repo.installation_id == installation_id,
                Repo.github_id == github_id,
            )
            .first()
        )

    def get_active(self) -> List[Repo]:
        return (
            self.session.query(Repo)
            .filter(Repo.is_active.is_(True))
            .order_by(Repo.owner, Repo.name)
            .all()
        )
