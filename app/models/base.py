"""
Base model with common fields and helpers
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime

from app import db


def generate_uuid():
    return str(uuid.uuid4())


def utcnow():
    return datetime.now(timezone.utc)


def as_utc(value):
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def isoformat(value):
    value = as_utc(value)
    return value.isoformat() if value else None


class BaseModel(db.Model):
    """Abstract base model with id and audit timestamps"""
    __abstract__ = True

    id = Column(String(36), primary_key=True, default=generate_uuid)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def touch(self, now=None):
        """Stamp updated_at, never moving it backwards.

        Returns the timestamp written so callers can reuse it for related
        rows in the same transaction.
        """
        now = now or utcnow()
        current = as_utc(self.updated_at)
        if current is not None and current > now:
            now = current
        self.updated_at = now
        return now
