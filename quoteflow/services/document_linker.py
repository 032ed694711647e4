"""Catalog entries for generated and uploaded quote PDFs."""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from quoteflow.models.document import Document
from quoteflow.services.storage import PDF_MIME_TYPE, StorageOutcome

logger = logging.getLogger(__name__)


class DocumentLinker:
    """Records where a quote's artifact ended up so it shows up with other documents."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def link(
        self,
        quote,
        outcome: StorageOutcome,
        file_size: int,
        file_name: Optional[str] = None,
        description: Optional[str] = None,
        uploaded_by: Optional[str] = None,
    ) -> Document:
        """Add a catalog entry to the session; the caller commits."""
        if description is None:
            client_name = (quote.client_info or {}).get("name")
            description = f"Quote {quote.quote_number}"
            if client_name:
                description += f" for {client_name}"

        document = Document(
            client_id=quote.client_id,
            uploaded_by=uploaded_by,
            file_name=file_name or f"quote-{quote.quote_number}.pdf",
            mime_type=PDF_MIME_TYPE,
            file_size=file_size,
            locator=outcome.locator,
            storage_strategy=outcome.strategy,
            storage_id=outcome.storage_id,
            category="quote",
            description=description[:500],
            related_quote_id=quote.id,
        )
        self.db.add(document)
        logger.debug("Linked %s artifact for quote %s", outcome.strategy, quote.quote_number)
        return document
