"""
Soft-delete aware query handle over SQLAlchemy.

EntityAccessor mediates reads and writes for one mapped entity type and hands
out fresh QueryHandle objects. A QueryHandle is a mutable builder: clauses are
folded left to right (where ANDs with everything recorded so far, or_where ORs
with it), and the soft-delete scope is ANDed around the whole predicate when
the statement is built. Nothing touches the database until a terminal method
(get, paginate, find_or_fail, first_or_fail, count, update, destroy) runs.
"""

import logging
import operator as op
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from sqlalchemy import ColumnElement, and_, func, inspect as sa_inspect, or_, select
from sqlalchemy import update as sa_update
from sqlalchemy.exc import InvalidRequestError
from sqlalchemy.orm import Session, load_only

from fluentrepo.db.base import Base, SoftDeleteMixin
from fluentrepo.db.pagination import Page
from fluentrepo.exceptions import ConfigurationError, NotFoundError

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=Base)

# Comparison operators accepted by where()/or_where()
OPERATORS: dict[str, Callable[[Any, Any], ColumnElement[bool]]] = {
    "=": op.eq,
    "!=": op.ne,
    "<>": op.ne,
    "<": op.lt,
    "<=": op.le,
    ">": op.gt,
    ">=": op.ge,
    "like": lambda column, value: column.like(value),
    "not like": lambda column, value: column.not_like(value),
    "ilike": lambda column, value: column.ilike(value),
    "in": lambda column, value: column.in_(value),
    "not in": lambda column, value: column.not_in(value),
}

ALL_COLUMNS = ("*",)


def normalize_operator(operator: str) -> str:
    """Return the canonical spelling of a comparison operator or raise ValueError."""
    key = " ".join(str(operator).lower().split())
    if key not in OPERATORS:
        raise ValueError(
            f"Unsupported operator {operator!r}; expected one of {sorted(OPERATORS)}"
        )
    return key


class EntityAccessor(Generic[ModelType]):
    """Reads and writes one entity type through a session."""

    def __init__(self, session: Session, model: type[ModelType]):
        self.session = session
        self.model = model
        self.mapper = sa_inspect(model)
        self.soft_deletes = issubclass(model, SoftDeleteMixin)
        self.deleted_at_column = model.DELETED_AT if self.soft_deletes else None

    @property
    def primary_key(self):
        return self.mapper.primary_key[0]

    def new_query(self) -> "QueryHandle[ModelType]":
        return QueryHandle(self)

    def attribute(self, field: str):
        """Mapped attribute for a column name. Unknown names raise InvalidRequestError."""
        try:
            return self.mapper.column_attrs[field].class_attribute
        except KeyError:
            raise InvalidRequestError(
                f"Entity {self.model.__name__} has no column {field!r}"
            ) from None

    def create(self, data: Mapping[str, Any]) -> ModelType:
        """Insert a row and return the refreshed entity. Caller commits session."""
        unknown = [key for key in data if key not in self.mapper.attrs]
        if unknown:
            raise InvalidRequestError(
                f"Entity {self.model.__name__} has no attribute(s) {', '.join(map(repr, unknown))}"
            )
        entity = self.model(**data)
        self.session.add(entity)
        self.session.flush()
        self.session.refresh(entity)
        return entity

    def force_delete(self, entity: ModelType) -> None:
        """Remove the row permanently, soft-deletable or not."""
        self.session.delete(entity)
        self.session.flush()


class QueryHandle(Generic[ModelType]):
    """Mutable query builder for a single entity type."""

    def __init__(self, accessor: EntityAccessor[ModelType]):
        self._accessor = accessor
        self.model = accessor.model
        self._criteria: ColumnElement[bool] | None = None
        self._trashed = "exclude"
        self._offset: int | None = None
        self._limit: int | None = None
        self._order_by: list[Any] = []

    @property
    def session(self) -> Session:
        return self._accessor.session

    # --- soft-delete visibility ---

    def with_trashed(self) -> "QueryHandle[ModelType]":
        self._require_soft_deletes("with_trashed")
        self._trashed = "include"
        return self

    def only_trashed(self) -> "QueryHandle[ModelType]":
        self._require_soft_deletes("only_trashed")
        self._trashed = "only"
        return self

    def _require_soft_deletes(self, method: str) -> None:
        if not self._accessor.soft_deletes:
            raise ConfigurationError(
                f"{method}() requires {self.model.__name__} to use SoftDeleteMixin"
            )

    # --- predicates ---

    def where(
        self,
        conditions: str | Mapping[str, Any],
        operator: str = "=",
        value: Any = None,
    ) -> "QueryHandle[ModelType]":
        self._add(self._clause(conditions, operator, value), disjunctive=False)
        return self

    def or_where(
        self,
        conditions: str | Mapping[str, Any],
        operator: str = "=",
        value: Any = None,
    ) -> "QueryHandle[ModelType]":
        self._add(self._clause(conditions, operator, value), disjunctive=True)
        return self

    def where_nested(
        self, build: Callable[["QueryHandle[ModelType]"], Any]
    ) -> "QueryHandle[ModelType]":
        """AND a parenthesised group built by `build` on a blank handle."""
        nested = QueryHandle(self._accessor)
        build(nested)
        if nested._criteria is not None:
            self._add(nested._criteria, disjunctive=False)
        return self

    def where_null(self, field: str) -> "QueryHandle[ModelType]":
        self._add(self._accessor.attribute(field).is_(None), disjunctive=False)
        return self

    def where_not_null(self, field: str) -> "QueryHandle[ModelType]":
        self._add(self._accessor.attribute(field).is_not(None), disjunctive=False)
        return self

    def or_where_not_null(self, field: str) -> "QueryHandle[ModelType]":
        self._add(self._accessor.attribute(field).is_not(None), disjunctive=True)
        return self

    def _clause(self, conditions, operator, value) -> ColumnElement[bool] | None:
        if isinstance(conditions, Mapping):
            # An empty mapping contributes no clause, in AND and OR position alike
            if not conditions:
                return None
            return and_(
                *(self._accessor.attribute(field) == v for field, v in conditions.items())
            )
        compare = OPERATORS[normalize_operator(operator)]
        return compare(self._accessor.attribute(conditions), value)

    def _add(self, clause: ColumnElement[bool] | None, disjunctive: bool) -> None:
        if clause is None:
            return
        if self._criteria is None:
            self._criteria = clause
        elif disjunctive:
            self._criteria = or_(self._criteria, clause)
        else:
            self._criteria = and_(self._criteria, clause)

    # --- pagination and ordering ---

    def skip(self, offset: int) -> "QueryHandle[ModelType]":
        self._offset = offset
        return self

    def take(self, limit: int) -> "QueryHandle[ModelType]":
        self._limit = limit
        return self

    def order_by(self, field: str, direction: str = "ASC") -> "QueryHandle[ModelType]":
        attribute = self._accessor.attribute(field)
        self._order_by.append(attribute.desc() if direction.upper() == "DESC" else attribute.asc())
        return self

    # --- statement building ---

    def criteria(self) -> ColumnElement[bool] | None:
        """Recorded predicate with the soft-delete scope applied."""
        scope = None
        if self._accessor.soft_deletes:
            deleted_at = self._accessor.attribute(self._accessor.deleted_at_column)
            if self._trashed == "exclude":
                scope = deleted_at.is_(None)
            elif self._trashed == "only":
                scope = deleted_at.is_not(None)
        if scope is None:
            return self._criteria
        if self._criteria is None:
            return scope
        return and_(self._criteria, scope)

    def _select(self, columns: Sequence[str] | str = ALL_COLUMNS):
        stmt = select(self.model)
        if isinstance(columns, str):
            columns = [columns]
        if "*" not in columns:
            stmt = stmt.options(load_only(*(self._accessor.attribute(c) for c in columns)))
        criteria = self.criteria()
        if criteria is not None:
            stmt = stmt.where(criteria)
        return stmt

    def _ordered(self, stmt):
        if self._order_by:
            stmt = stmt.order_by(*self._order_by)
        return stmt

    def _paged(self, stmt):
        if self._offset is not None:
            stmt = stmt.offset(self._offset)
        if self._limit is not None:
            stmt = stmt.limit(self._limit)
        return stmt

    def statement(self, columns: Sequence[str] | str = ALL_COLUMNS):
        """Full SELECT: predicate, soft-delete scope, ordering, offset and limit."""
        return self._paged(self._ordered(self._select(columns)))

    # --- terminal operations ---

    def get(self, columns: Sequence[str] | str = ALL_COLUMNS) -> list[ModelType]:
        return list(self.session.scalars(self.statement(columns)).all())

    def count(self) -> int:
        subquery = self._select().subquery()
        return self.session.scalar(select(func.count()).select_from(subquery))

    def paginate(
        self,
        per_page: int,
        columns: Sequence[str] | str = ALL_COLUMNS,
        page: int = 1,
    ) -> Page[ModelType]:
        """Page `page` (1-based) of `per_page` rows. Ignores skip/take."""
        total = self.count()
        stmt = self._ordered(self._select(columns)).offset((page - 1) * per_page).limit(per_page)
        items = list(self.session.scalars(stmt).all())
        return Page(items=items, total=total, per_page=per_page, page=page)

    def find_or_fail(self, id: Any, columns: Sequence[str] | str = ALL_COLUMNS) -> ModelType:
        stmt = self._select(columns).where(self._accessor.primary_key == id)
        entity = self.session.scalars(stmt).first()
        if entity is None:
            logger.debug("find_or_fail: %s %r not found", self.model.__name__, id)
            raise NotFoundError(self.model, id)
        return entity

    def first_or_fail(self, columns: Sequence[str] | str = ALL_COLUMNS) -> ModelType:
        stmt = self._ordered(self._select(columns)).limit(1)
        entity = self.session.scalars(stmt).first()
        if entity is None:
            logger.debug("first_or_fail: no %s matched", self.model.__name__)
            raise NotFoundError(self.model)
        return entity

    def update(self, data: Mapping[str, Any]) -> int:
        """Bulk UPDATE of every matching row. Returns affected-row count."""
        stmt = sa_update(self.model).values(**data)
        criteria = self.criteria()
        if criteria is not None:
            stmt = stmt.where(criteria)
        result = self.session.execute(stmt.execution_options(synchronize_session="fetch"))
        return result.rowcount

    def destroy(self, ids: Any) -> int:
        """Delete rows by primary key; soft-deletable entities get deleted_at set."""
        if isinstance(ids, Iterable) and not isinstance(ids, (str, bytes)):
            keys = list(ids)
        else:
            keys = [ids]
        if not keys:
            return 0
        stmt = self._select().where(self._accessor.primary_key.in_(keys))
        entities = self.session.scalars(stmt).all()
        now = datetime.now(timezone.utc)
        for entity in entities:
            if self._accessor.soft_deletes:
                setattr(entity, self._accessor.deleted_at_column, now)
            else:
                self.session.delete(entity)
        self.session.flush()
        return len(entities)
