"""Shared SQLAlchemy model mixins."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, func
from sqlalchemy.orm import Mapped, mapped_column


class TimestampMixin:
    """Mixin providing created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class RecordMixin(TimestampMixin):
    """Store-assigned integer ``id`` plus timestamps.

    The upsert engine addresses rows by ``id`` once the natural key has
    been resolved, so every upsertable table uses this mixin.
    """

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
