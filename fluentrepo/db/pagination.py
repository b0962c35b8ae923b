"""Page of query results returned by paginate()."""

import math
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """One page of entities plus the total number of matching rows."""

    items: list[T]
    total: int = Field(..., ge=0)
    per_page: int = Field(..., ge=1)
    page: int = Field(1, ge=1)

    model_config = {"arbitrary_types_allowed": True}

    @property
    def last_page(self) -> int:
        return max(1, math.ceil(self.total / self.per_page))

    @property
    def has_more(self) -> bool:
        return self.page < self.last_page
