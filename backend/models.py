"""
SQLAlchemy ORM models for the dashboard's key/value dataset storage.

The analytics never query tables directly; they read and write serialized
datasets by key through analytics.storage.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, String, LargeBinary, DateTime

from database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StorageEntry(Base):
    """One stored blob, e.g. the JSON-encoded expense list under 'expense-data'."""
    __tablename__ = "storage_entries"

    key = Column(String, primary_key=True)
    value = Column(LargeBinary, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)
