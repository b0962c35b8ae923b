"""
Deferred query specification recorded by Repository chain methods.

Predicates are a tagged variant: FieldPredicate for a single comparison,
MultiEquality for a mapping of field -> value. Soft-delete visibility is a
three-state enum instead of two independent flags.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Union

from fluentrepo.db.query import normalize_operator


class TrashedMode(str, Enum):
    DEFAULT = "default"
    INCLUDE = "include"
    ONLY = "only"


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"

    @classmethod
    def parse(cls, value: "str | SortDirection") -> "SortDirection":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Sort direction must be ASC or DESC, got {value!r}") from None


@dataclass(frozen=True)
class FieldPredicate:
    field: str
    operator: str
    value: Any

    def __post_init__(self) -> None:
        object.__setattr__(self, "operator", normalize_operator(self.operator))


@dataclass(frozen=True)
class MultiEquality:
    """Equality conjunction over several fields, e.g. {"customer_name": "Acme", "location": "Oslo"}."""

    mapping: Mapping[str, Any]

    def __post_init__(self) -> None:
        object.__setattr__(self, "mapping", MappingProxyType(dict(self.mapping)))


Predicate = Union[FieldPredicate, MultiEquality]


@dataclass
class QuerySpecification:
    """Everything recorded between two terminal operations."""

    trashed: TrashedMode = TrashedMode.DEFAULT
    where: list[Predicate] = field(default_factory=list)
    or_where: list[Predicate] = field(default_factory=list)
    skip: int | None = None
    take: int | None = None
    order_by: list[tuple[str, SortDirection]] = field(default_factory=list)

    def describe(self) -> str:
        """Compact summary for debug logging."""
        order = ", ".join(f"{name} {direction.value}" for name, direction in self.order_by)
        return (
            f"trashed={self.trashed.value} where={len(self.where)} "
            f"or_where={len(self.or_where)} skip={self.skip} take={self.take} "
            f"order_by=[{order}]"
        )
