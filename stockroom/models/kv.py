from __future__ import annotations

from sqlalchemy import Column, Text

from ..db.session import Base


class KeyValueEntry(Base):
    """One JSON blob stored under a string key."""

    __tablename__ = "kv_entries"

    key = Column(Text, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=True)
