"""
View count model - per-repository counter. Not soft-deletable.
"""

from sqlalchemy import Integer
from sqlalchemy.orm import Mapped, mapped_column

from fluentrepo.db.base import Base, TimestampMixin


class ViewCount(TimestampMixin, Base):
    __tablename__ = "view_counts"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    repository_id: Mapped[int] = mapped_column(Integer, nullable=False)
    count: Mapped[int | None] = mapped_column(Integer, nullable=True, default=0, server_default="0")

    def __repr__(self) -> str:
        return f"<ViewCount(id={self.id}, repository_id={self.repository_id}, count={self.count})>"
