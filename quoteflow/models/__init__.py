from quoteflow.models.client import Client
from quoteflow.models.project import Project, Requirement
from quoteflow.models.quote import Quote, QuoteSequence
from quoteflow.models.document import Document

__all__ = [
    "Client",
    "Project",
    "Requirement",
    "Quote",
    "QuoteSequence",
    "Document",
]
