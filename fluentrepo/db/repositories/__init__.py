# Repository pattern: fluent query specification over SQLAlchemy sessions

from fluentrepo.db.repositories.base_repository import Repository
from fluentrepo.db.repositories.specification import (
    FieldPredicate,
    MultiEquality,
    QuerySpecification,
    SortDirection,
    TrashedMode,
)
from fluentrepo.db.repositories.user_repository import UserRepository
from fluentrepo.db.repositories.view_count_repository import ViewCountRepository

__all__ = [
    "Repository",
    "FieldPredicate",
    "MultiEquality",
    "QuerySpecification",
    "SortDirection",
    "TrashedMode",
    "UserRepository",
    "ViewCountRepository",
]
