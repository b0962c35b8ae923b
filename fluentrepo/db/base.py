"""
SQLAlchemy declarative base and shared column mixins.
Every entity a repository can serve derives from Base.
"""

from datetime import datetime
from typing import ClassVar

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class TimestampMixin:
    """Nullable created_at / updated_at maintained by the database."""

    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=True
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=True
    )


class SoftDeleteMixin:
    """Marks rows deleted with a timestamp instead of removing them.

    Queries built through fluentrepo.db.query hide rows whose deleted_at is set
    unless with_trashed() / only_trashed() is requested.
    """

    DELETED_AT: ClassVar[str] = "deleted_at"

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    @property
    def trashed(self) -> bool:
        return self.deleted_at is not None
