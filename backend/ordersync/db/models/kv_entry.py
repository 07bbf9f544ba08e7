"""
KeyValueEntry — one row per durable setting.

Holds the processed-file ledger (a JSON array of filenames) and small
runtime settings such as the sync interval.
"""

from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, String

from ordersync.db.models.base import Base, utcnow


class KeyValueEntry(Base):
    """A JSON value stored under a string key."""

    __tablename__ = "kv_entries"

    key = Column(String(255), primary_key=True)
    value = Column(JSON, nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<KeyValueEntry {self.key}>"
