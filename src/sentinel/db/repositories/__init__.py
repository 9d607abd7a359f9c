"""
Repository layer for database operations.

Provides a clean API for CRUD operations on database models.
"""

from sentinel.db.repositories.alert import AlertRepository
from sentinel.db.repositories.attribution import AttributionRepository
from sentinel.db.repositories.base import BaseRepository
from sentinel.db.repositories.code_event import CodeEventRepository
from sentinel.db.repositories.incident import IncidentRepository
from sentinel.db.repositories.repo import RepoRepository
from sentinel.db.repositories.repo_metric import RepoMetricRepository

__all__ = [
    "AlertRepository",
    "AttributionRepository",
    "BaseRepository",
    "CodeEventRepository",
    "IncidentRepository",
    "RepoMetricRepository",
    "RepoRepository",
]
