"""Fluent, soft-delete aware repositories over SQLAlchemy."""

from fluentrepo.db.pagination import Page
from fluentrepo.db.repositories import Repository, UserRepository, ViewCountRepository
from fluentrepo.exceptions import ConfigurationError, NotFoundError, RepositoryError, StoreError

__all__ = [
    "Page",
    "Repository",
    "UserRepository",
    "ViewCountRepository",
    "ConfigurationError",
    "NotFoundError",
    "RepositoryError",
    "StoreError",
]
