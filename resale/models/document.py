from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, String, Text

from resale.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class Document(Base):
    """One keyed document, addressed by its hierarchical path (e.g. events/e1/tickets/t1)."""

    __tablename__ = "documents"

    path = Column(String(512), primary_key=True)
    collection = Column(String(128), nullable=False)  # parent collection path, e.g. events/e1/tickets
    data_json = Column(Text, nullable=False, default="{}")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_documents_collection", "collection"),
    )
