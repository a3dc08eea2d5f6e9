"""
Base database model.

Every table except the bias store gets a surrogate integer key and
created/updated timestamps. Timestamps are timezone-aware; SQLite hands them
back naive, which is why readers go through `timeutils.as_utc`.
"""

from sqlalchemy import Column, DateTime, Integer
from sqlalchemy.orm import declared_attr
from sqlalchemy.sql import func

from valleywx.database import Base


class TimestampMixin:
    """created_at / updated_at maintained by the database."""

    @declared_attr
    def created_at(cls):
        return Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @declared_attr
    def updated_at(cls):
        return Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class BaseModel(TimestampMixin, Base):
    """Abstract base: integer `id` plus timestamps."""

    __abstract__ = True

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    def __repr__(self) -> str:
        label = getattr(self, "code", None) or getattr(self, "date", None) or getattr(self, "valid_date", None)
        if label is not None:
            return f"<{self.__class__.__name__}(id={self.id}, {label})>"
        return f"<{self.__class__.__name__}(id={self.id})>"
