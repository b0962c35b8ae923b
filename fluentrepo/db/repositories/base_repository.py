"""
Base repository - fluent query specification plus terminal operations.

Chain methods (where, or_where, skip, take, order_by, with_trashed,
only_trashed) only record intent. A terminal operation (all, paginate, find,
find_by, find_all_by, first_or_fail, update, ...) takes a fresh query handle,
applies the recorded directives in a fixed order and executes:

    1. soft-delete visibility
    2. where / or_where predicates
    3. skip / take
    4. order_by

The recorded specification is cleared when a terminal operation returns or
raises, so one terminal call never leaks filters into the next.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Session

from fluentrepo.config import get_settings
from fluentrepo.db.base import Base
from fluentrepo.db.pagination import Page
from fluentrepo.db.query import ALL_COLUMNS, EntityAccessor, QueryHandle
from fluentrepo.db.repositories.specification import (
    FieldPredicate,
    MultiEquality,
    Predicate,
    QuerySpecification,
    SortDirection,
    TrashedMode,
)
from fluentrepo.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=Base)

Columns = Sequence[str] | str

_MISSING = object()


class Repository(Generic[ModelType]):
    """Generic repository. Subclasses bind a model and add entity-specific queries."""

    def __init__(self, session: Session, model: type[ModelType]):
        self.session = session
        self.model = model
        self.accessor = self.make_model()
        self._spec = QuerySpecification()

    def make_model(self) -> EntityAccessor[ModelType]:
        """Check that the model can back a repository and build its accessor."""
        model = self.model
        if not (isinstance(model, type) and issubclass(model, Base)):
            raise ConfigurationError(
                f"{model!r} must be a subclass of {Base.__module__}.{Base.__name__}"
            )
        if sa_inspect(model, raiseerr=False) is None:
            raise ConfigurationError(f"{model.__name__} is not a mapped entity")
        return EntityAccessor(self.session, model)

    @property
    def specification(self) -> QuerySpecification:
        """Directives recorded since the last terminal operation."""
        return self._spec

    # --- chainable directives ---

    def with_trashed(self) -> "Repository[ModelType]":
        """Include soft-deleted rows. Has no effect once only_trashed() is set."""
        if self._spec.trashed is not TrashedMode.ONLY:
            self._spec.trashed = TrashedMode.INCLUDE
        return self

    def only_trashed(self) -> "Repository[ModelType]":
        """Return soft-deleted rows only. Takes precedence over with_trashed()."""
        self._spec.trashed = TrashedMode.ONLY
        return self

    def where(
        self,
        conditions: str | Mapping[str, Any],
        value: Any = _MISSING,
        operator: str = "=",
    ) -> "Repository[ModelType]":
        """And where.

        `conditions` is either a field name compared to `value` with `operator`
        (=, !=, <>, <, <=, >, >=, like, not like, ilike, in, not in) or a
        mapping of field -> value matched for equality.
        """
        self._spec.where.append(self._predicate(conditions, value, operator))
        return self

    def or_where(
        self,
        conditions: str | Mapping[str, Any],
        value: Any = _MISSING,
        operator: str = "=",
    ) -> "Repository[ModelType]":
        """Or where. Same call shapes as where()."""
        self._spec.or_where.append(self._predicate(conditions, value, operator))
        return self

    def skip(self, offset: int) -> "Repository[ModelType]":
        """Offset into the result set. Last call wins."""
        if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
            raise ValueError(f"skip() offset must be a non-negative integer, got {offset!r}")
        self._spec.skip = offset
        return self

    def take(self, limit: int) -> "Repository[ModelType]":
        """Maximum number of rows. Last call wins."""
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValueError(f"take() limit must be a positive integer, got {limit!r}")
        self._spec.take = limit
        return self

    def order_by(
        self, field: str, direction: str | SortDirection = SortDirection.ASC
    ) -> "Repository[ModelType]":
        """Add a sort key. Keys apply in call order."""
        self._spec.order_by.append((field, SortDirection.parse(direction)))
        return self

    @staticmethod
    def _predicate(conditions, value, operator) -> Predicate:
        if isinstance(conditions, Mapping):
            return MultiEquality(conditions)
        if not isinstance(conditions, str):
            raise TypeError(
                f"conditions must be a field name or a mapping, got {type(conditions).__name__}"
            )
        if value is _MISSING:
            raise ValueError(f"A value is required when filtering on field {conditions!r}")
        return FieldPredicate(conditions, operator, value)

    # --- terminal operations ---

    def all(self, columns: Columns = ALL_COLUMNS) -> list[ModelType]:
        """All matching rows; [] when nothing matches."""
        spec = self._detach("all")
        query = self._compile(spec, trashed=True, predicates=True, bounds=True, ordering=True)
        return query.get(columns)

    def paginate(
        self,
        per_page: int | None = None,
        columns: Columns = ALL_COLUMNS,
        page: int = 1,
    ) -> Page[ModelType]:
        """One page of matching rows with the total count. skip/take are not applied."""
        spec = self._detach("paginate")
        settings = get_settings()
        if per_page is None:
            per_page = settings.default_page_size
        if not 1 <= per_page <= settings.max_page_size:
            raise ValueError(
                f"per_page must be between 1 and {settings.max_page_size}, got {per_page!r}"
            )
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page!r}")
        query = self._compile(spec, trashed=True, predicates=True, ordering=True)
        return query.paginate(per_page, columns, page)

    def create(self, data: Mapping[str, Any]) -> ModelType:
        """Insert a row. Recorded directives are discarded, not applied."""
        self._detach("create")
        return self.accessor.create(data)

    def update(
        self,
        data: Mapping[str, Any],
        id: Any,
        attribute: str = "id",
        with_soft_del: bool = False,
    ) -> int:
        """Update every row where `attribute` equals `id`; returns affected-row count.

        Soft-deleted rows are only reachable when with_soft_del is set together
        with with_trashed() or only_trashed().
        """
        spec = self._detach("update")
        query = self._compile(spec, trashed=with_soft_del)
        return query.where(attribute, "=", id).update(data)

    def delete(self, id: Any) -> int:
        """Soft-delete (or delete, for entities without soft deletes) by primary key."""
        self._detach("delete")
        return self.accessor.new_query().destroy(id)

    def force_delete(self, id: Any) -> None:
        """Remove a row permanently. Raises NotFoundError when find(id) fails."""
        entity = self.find(id)
        self.accessor.force_delete(entity)

    def find(self, id: Any, columns: Columns = ALL_COLUMNS) -> ModelType:
        spec = self._detach("find")
        return self._compile(spec, trashed=True).find_or_fail(id, columns)

    def find_by(self, field: str, value: Any, columns: Columns = ALL_COLUMNS) -> ModelType:
        spec = self._detach("find_by")
        query = self._compile(spec, trashed=True)
        return query.where(field, "=", value).first_or_fail(columns)

    def find_all_by(self, field: str, value: Any, columns: Columns = ALL_COLUMNS) -> list[ModelType]:
        spec = self._detach("find_all_by")
        query = self._compile(spec, trashed=True, ordering=True)
        return query.where(field, "=", value).get(columns)

    def first_or_fail(self, columns: Columns = ALL_COLUMNS) -> ModelType:
        spec = self._detach("first_or_fail")
        return self._compile(spec, trashed=True, predicates=True).first_or_fail(columns)

    # --- compilation ---

    def _detach(self, operation: str) -> QuerySpecification:
        """Hand the recorded specification to a terminal operation and start a blank one."""
        spec, self._spec = self._spec, QuerySpecification()
        logger.debug("%s.%s: %s", self.model.__name__, operation, spec.describe())
        return spec

    def _compile(
        self,
        spec: QuerySpecification,
        trashed: bool = False,
        predicates: bool = False,
        bounds: bool = False,
        ordering: bool = False,
    ) -> QueryHandle[ModelType]:
        query = self.accessor.new_query()
        if trashed:
            self._apply_trashed(query, spec)
        if predicates:
            self._apply_where(query, spec)
        if bounds:
            self._apply_bounds(query, spec)
        if ordering:
            self._apply_order_by(query, spec)
        return query

    @staticmethod
    def _apply_trashed(query: QueryHandle, spec: QuerySpecification) -> None:
        if spec.trashed is TrashedMode.INCLUDE:
            query.with_trashed()
        elif spec.trashed is TrashedMode.ONLY:
            query.only_trashed()

    def _apply_where(self, query: QueryHandle, spec: QuerySpecification) -> None:
        for predicate in spec.where:
            self._apply_predicate(query.where, predicate)
        for predicate in spec.or_where:
            self._apply_predicate(query.or_where, predicate)

        if not spec.or_where:
            return
        # An OR branch must not widen or narrow the requested trashed visibility
        deleted_at = self.accessor.deleted_at_column
        if spec.trashed is TrashedMode.INCLUDE:
            query.where_nested(lambda q: q.where_null(deleted_at).or_where_not_null(deleted_at))
        elif spec.trashed is TrashedMode.ONLY:
            query.where_not_null(deleted_at)

    @staticmethod
    def _apply_predicate(add: Callable[..., Any], predicate: Predicate) -> None:
        if isinstance(predicate, MultiEquality):
            add(predicate.mapping)
        else:
            add(predicate.field, predicate.operator, predicate.value)

    @staticmethod
    def _apply_bounds(query: QueryHandle, spec: QuerySpecification) -> None:
        if spec.skip is not None:
            query.skip(spec.skip)
        if spec.take is not None:
            query.take(spec.take)

    @staticmethod
    def _apply_order_by(query: QueryHandle, spec: QuerySpecification) -> None:
        for field, direction in spec.order_by:
            query.order_by(field, direction.value)

