"""
Client directory rows read by the quote pipeline.

Only the contact/business fields copied into a quote's ``client_info``
snapshot are modeled here.
"""
import uuid

from sqlalchemy import Column, String, Text

from quoteflow.database import Base


class Client(Base):
    """Client record (read-only from the pipeline's point of view)."""

    __tablename__ = "clients"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    full_name = Column(String(255), nullable=False)
    business_name = Column(String(255))
    address = Column(Text)
    phone = Column(String(50))
    email = Column(String(255))
    tax_id = Column(String(50))

    def to_snapshot(self) -> dict:
        """Contact fields frozen into a quote at creation time."""
        return {
            "name": self.full_name,
            "business_name": self.business_name,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
            "tax_id": self.tax_id,
        }

    def __repr__(self):
        return f"<Client(id={self.id}, name={self.full_name})>"
