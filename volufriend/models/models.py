from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, JSON, Index

from ..db import Base


def _now_utc():
    return datetime.now(timezone.utc)


class Document(Base):
    """One record of the document tree, addressed by (collection, key)."""

    __tablename__ = "documents"

    collection = Column(String(64), primary_key=True)
    key = Column(String(64), primary_key=True)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=_now_utc)
    updated_at = Column(DateTime(timezone=True), default=_now_utc, onupdate=_now_utc)

    __table_args__ = (Index("ix_documents_collection", "collection"),)
