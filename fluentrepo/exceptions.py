"""
Repository errors.

Store failures are not wrapped: anything SQLAlchemy raises reaches the caller
unchanged. StoreError is exported so callers can catch it without importing
sqlalchemy themselves.
"""

from typing import Any

from sqlalchemy.exc import SQLAlchemyError

StoreError = SQLAlchemyError


class RepositoryError(Exception):
    """Base class for errors raised by the repository layer itself."""


class ConfigurationError(RepositoryError):
    """Entity type cannot back a repository (not mapped, no soft deletes, ...)."""


class NotFoundError(RepositoryError):
    """A single-entity lookup matched no rows."""

    def __init__(self, model: type, key: Any = None):
        self.model = model
        self.key = key
        name = getattr(model, "__name__", str(model))
        if key is None:
            message = f"No query results for model [{name}]"
        else:
            message = f"No query results for model [{name}] {key!r}"
        super().__init__(message)
