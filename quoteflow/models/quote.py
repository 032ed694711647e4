"""
SQLAlchemy models for quotes and their yearly number sequences.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, JSON, String, Text,
    Index, UniqueConstraint,
)

from quoteflow.database import Base

QUOTE_STATUSES = ("draft", "sent", "viewed", "accepted", "rejected", "expired")
DISCOUNT_TYPES = ("percentage", "fixed")

DEFAULT_TITLE = "Quote"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Quote(Base):
    """Priced, versioned commercial document for a client."""
    __tablename__ = "quotes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Q{year}-{seq:04d}, assigned once at first persistence
    quote_number = Column(String(20), unique=True, nullable=False, index=True)

    # Revision number, scoped to project_id
    version = Column(Integer, nullable=False, default=1)

    client_id = Column(String(36), ForeignKey("clients.id"), nullable=False, index=True)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=True, index=True)
    linked_requirement_ids = Column(JSON, nullable=False, default=list)
    created_by = Column(String(64), nullable=True)

    # Snapshots copied at creation, never re-synced
    business_info = Column(JSON, nullable=False, default=dict)
    client_info = Column(JSON, nullable=False, default=dict)

    title = Column(String(255), nullable=False, default=DEFAULT_TITLE)

    # Each item: {name, description, quantity, unit_price, total_price}
    items = Column(JSON, nullable=False, default=list)

    # Pricing
    discount = Column(Float, nullable=False, default=0.0)
    discount_type = Column(String(20), nullable=False, default="fixed")
    include_vat = Column(Boolean, nullable=False, default=True)
    vat_rate = Column(Float, nullable=False, default=17.0)  # Percentage (e.g., 17)
    subtotal = Column(Float, nullable=False, default=0.0)
    vat_amount = Column(Float, nullable=False, default=0.0)
    total = Column(Float, nullable=False, default=0.0)

    notes = Column(Text, nullable=True)
    terms = Column(Text, nullable=True)
    valid_until = Column(Date, nullable=True)

    # draft, sent, viewed, accepted, rejected, expired
    status = Column(String(20), nullable=False, default="draft", index=True)

    # Rendered artifact: remote URL, local path or data URI
    pdf_locator = Column(Text, nullable=True)
    pdf_storage_id = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        UniqueConstraint('project_id', 'version', name='uq_quotes_project_version'),
        Index('idx_quotes_client_status', 'client_id', 'status'),
        Index('idx_quotes_created_at', 'created_at'),
    )

    def apply_totals(self, totals):
        """Copy a computed QuoteTotals onto the row."""
        self.items = [dict(item) for item in totals.items]
        self.subtotal = totals.subtotal
        self.vat_amount = totals.vat_amount
        self.total = totals.total

    def __repr__(self):
        return f"<Quote(id={self.id}, quote_number={self.quote_number}, version={self.version}, status={self.status})>"


class QuoteSequence(Base):
    """Per-year counter backing quote numbers."""
    __tablename__ = "quote_sequences"

    # e.g. "Q2026"
    scope = Column(String(16), primary_key=True)
    value = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<QuoteSequence({self.scope}={self.value})>"
