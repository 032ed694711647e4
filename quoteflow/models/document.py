import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, Index

from quoteflow.database import Base

DOCUMENT_CATEGORIES = ("quote", "contract", "invoice", "receipt", "proposal", "specification", "other")


class Document(Base):
    """Catalog entry pointing at a stored artifact."""

    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=False, index=True)
    uploaded_by = Column(String(64), nullable=True)

    file_name = Column(String(255), nullable=False)
    mime_type = Column(String(100), nullable=False, default="application/pdf")
    file_size = Column(Integer, nullable=False)

    # Where the artifact lives: remote URL, local path or data URI
    locator = Column(Text, nullable=False)
    storage_strategy = Column(String(20), nullable=False)
    storage_id = Column(String(255), nullable=True)

    category = Column(String(20), nullable=False, default="other")
    description = Column(String(500))

    # No FK: catalog entries survive deletion of the quote
    related_quote_id = Column(String(36), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index('idx_documents_client_category', 'client_id', 'category'),
    )

    def __repr__(self):
        return f"<Document(id={self.id}, category={self.category}, file_name={self.file_name})>"
