"""Shared building blocks used across features."""

from app.shared.models import RecordMixin, TimestampMixin

__all__ = [
    "RecordMixin",
    "TimestampMixin",
]
