import uuid

from sqlalchemy import Column, Float, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from quoteflow.database import Base


class Project(Base):
    """Client project whose requirements can be priced into a quote."""

    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)

    requirements = relationship(
        "Requirement",
        back_populates="project",
        order_by="Requirement.position",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Project(id={self.id}, name={self.name})>"


class Requirement(Base):
    """A scoped unit of work within a project."""

    __tablename__ = "requirements"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=False, index=True)
    position = Column(Float, nullable=False, default=0)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    estimated_hours = Column(Float)

    # pending, approved, rejected, done
    status = Column(String(20), nullable=False, default="pending")

    project = relationship("Project", back_populates="requirements")

    def __repr__(self):
        return f"<Requirement(id={self.id}, title={self.title}, status={self.status})>"
