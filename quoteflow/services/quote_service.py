"""
Quote Service

Owns the quote lifecycle:
- create from manual line items or from a project's requirements
- update with full totals recalculation
- status changes, duplication, deletion
- rendering the PDF and storing it through the storage chain

Totals, quote number, version and the record itself are written in one
commit. Conflicting numbers or versions from concurrent requests surface as
IntegrityError and the whole write is retried.
"""

import logging
import uuid
from datetime import date, datetime
from pathlib import PurePath
from typing import Callable, Optional

import httpx
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from quoteflow.exceptions import (
    ConflictError,
    NotFoundError,
    PayloadTooLargeError,
    ValidationError,
)
from quoteflow.models.client import Client
from quoteflow.models.project import Project, Requirement
from quoteflow.models.quote import DEFAULT_TITLE, QUOTE_STATUSES, Quote
from quoteflow.schemas.quote import (
    BusinessProfile,
    QuoteCreate,
    QuoteStatus,
    QuoteUpdate,
    RenderResult,
)
from quoteflow.services.document_linker import DocumentLinker
from quoteflow.services.numbering import QuoteNumberAllocator, VersionResolver, utc_now
from quoteflow.services.quote_pdf import QuoteRenderer, snapshot_from_quote
from quoteflow.services.requirement_mapper import map_requirements_to_items, select_requirements
from quoteflow.services.storage import PDF_MIME_TYPE, StorageError, StorageStrategyChain
from quoteflow.services.totals import compute_totals

logger = logging.getLogger(__name__)

MAX_WRITE_ATTEMPTS = 5
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024
PDF_MAGIC = b"%PDF-"

# Fields a plain update may set to null
CLEARABLE_FIELDS = {"notes", "terms", "valid_until"}
PRICING_FIELDS = ("items", "discount", "discount_type", "include_vat", "vat_rate")
OPEN_STATUSES = {"draft", "sent", "viewed"}


def _value(v):
    return getattr(v, "value", v)


def is_past_validity(quote: Quote, today: date) -> bool:
    """
    True when an open quote's valid_until date has passed.

    Nothing in the pipeline flips a quote to ``expired`` by itself; callers
    use this to decide whether to call set_status(..., "expired").
    """
    return (
        quote.valid_until is not None
        and quote.valid_until < today
        and quote.status in OPEN_STATUSES
    )


class QuoteService:
    """Quote aggregate operations bound to one database session."""

    def __init__(
        self,
        db: AsyncSession,
        profile: BusinessProfile,
        renderer: Optional[QuoteRenderer] = None,
        storage: Optional[StorageStrategyChain] = None,
        clock: Callable[[], datetime] = utc_now,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    ):
        self.db = db
        self.profile = profile
        self.renderer = renderer
        self.storage = storage
        self.clock = clock
        self.max_upload_bytes = max_upload_bytes

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_quote(self, quote_id: str) -> Quote:
        result = await self.db.execute(select(Quote).where(Quote.id == quote_id))
        quote = result.scalar_one_or_none()
        if not quote:
            raise NotFoundError("Quote", quote_id)
        return quote

    async def get_quote_by_number(self, quote_number: str) -> Quote:
        result = await self.db.execute(select(Quote).where(Quote.quote_number == quote_number))
        quote = result.scalar_one_or_none()
        if not quote:
            raise NotFoundError("Quote", quote_number)
        return quote

    async def list_quotes(
        self,
        client_id: Optional[str] = None,
        project_id: Optional[str] = None,
        status: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Quote], int]:
        query = select(Quote)
        if client_id:
            query = query.where(Quote.client_id == client_id)
        if project_id:
            query = query.where(Quote.project_id == project_id)
        if status:
            query = query.where(Quote.status == _value(status))

        total = (await self.db.execute(select(func.count()).select_from(query.subquery()))).scalar()

        offset = (page - 1) * page_size
        query = query.order_by(Quote.created_at.desc(), Quote.version.desc()).offset(offset).limit(page_size)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def _get_client(self, client_id: str) -> Client:
        client = await self.db.get(Client, client_id)
        if not client:
            raise NotFoundError("Client", client_id)
        return client

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _vat_rate(self, vat_rate: Optional[float]) -> float:
        return self.profile.default_vat_rate if vat_rate is None else vat_rate

    async def create_quote(
        self,
        client_id: str,
        data: QuoteCreate,
        created_by: Optional[str] = None,
    ) -> Quote:
        """Create a quote from manual line items (possibly none)."""
        client = await self._get_client(client_id)
        vat_rate = self._vat_rate(data.vat_rate)
        totals = compute_totals(
            data.items,
            discount=data.discount,
            discount_type=_value(data.discount_type),
            include_vat=data.include_vat,
            vat_rate=vat_rate,
        )

        business_info = data.business_info or self.profile.info
        fields = {
            "client_id": client.id,
            "project_id": None,
            "linked_requirement_ids": [],
            "created_by": created_by,
            "business_info": business_info.model_dump(),
            "client_info": client.to_snapshot(),
            "title": data.title or DEFAULT_TITLE,
            "discount": data.discount,
            "discount_type": _value(data.discount_type),
            "include_vat": data.include_vat,
            "vat_rate": vat_rate,
            "notes": data.notes,
            "terms": data.terms,
            "valid_until": data.valid_until,
            "status": QuoteStatus.draft.value,
        }
        return await self._insert(fields, totals)

    async def generate_from_project(
        self,
        project_id: str,
        requirement_ids: Optional[list[str]] = None,
        created_by: Optional[str] = None,
    ) -> Quote:
        """
        Price a project's requirements into a new quote revision.

        Uses the explicit requirement ids when given, otherwise every
        approved requirement. Raises EmptySelectionError when nothing
        resolves.
        """
        project = await self.db.get(Project, project_id)
        if not project:
            raise NotFoundError("Project", project_id)
        client = await self._get_client(project.client_id)

        result = await self.db.execute(
            select(Requirement)
            .where(Requirement.project_id == project.id)
            .order_by(Requirement.position, Requirement.title)
        )
        selected = select_requirements(result.scalars().all(), requirement_ids)
        items = map_requirements_to_items(selected, self.profile.hourly_rate)

        vat_rate = self.profile.default_vat_rate
        totals = compute_totals(items, discount=0, discount_type="fixed", include_vat=True, vat_rate=vat_rate)

        fields = {
            "client_id": client.id,
            "project_id": project.id,
            "linked_requirement_ids": [r.id for r in selected],
            "created_by": created_by,
            "business_info": self.profile.info.model_dump(),
            "client_info": client.to_snapshot(),
            "title": f"{DEFAULT_TITLE} - {project.name}",
            "discount": 0.0,
            "discount_type": "fixed",
            "include_vat": True,
            "vat_rate": vat_rate,
            "status": QuoteStatus.draft.value,
        }
        quote = await self._insert(fields, totals)
        logger.info(
            "Generated quote %s v%d from %d requirement(s) of project %s",
            quote.quote_number, quote.version, len(items), project_id,
        )
        return quote

    async def _insert(self, fields: dict, totals) -> Quote:
        """Assign version and number, then write the quote in a single commit."""
        for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
            quote = Quote(**fields)
            quote.apply_totals(totals)
            try:
                quote.version = await VersionResolver(self.db).next_version(fields.get("project_id"))
                quote.quote_number = await QuoteNumberAllocator(self.db, self.clock).allocate()
                self.db.add(quote)
                await self.db.commit()
            except IntegrityError as e:
                await self.db.rollback()
                logger.warning(
                    "Quote number/version conflict (attempt %d/%d): %s",
                    attempt, MAX_WRITE_ATTEMPTS, e.orig,
                )
                continue

            await self.db.refresh(quote)
            logger.info("Created quote %s (id=%s, version=%d)", quote.quote_number, quote.id, quote.version)
            return quote

        raise ConflictError("Could not assign a unique quote number, please retry")

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    async def update_quote(self, quote_id: str, data: QuoteUpdate) -> Quote:
        """Apply a partial update and recompute totals from the merged values."""
        quote = await self.get_quote(quote_id)

        updates = {}
        for field_name, value in data.model_dump(exclude_unset=True).items():
            if value is None and field_name not in CLEARABLE_FIELDS:
                continue
            updates[field_name] = _value(value)

        merged = {name: updates.get(name, getattr(quote, name)) for name in PRICING_FIELDS}
        totals = compute_totals(
            merged["items"] or [],
            discount=merged["discount"],
            discount_type=merged["discount_type"],
            include_vat=merged["include_vat"],
            vat_rate=merged["vat_rate"],
        )

        for field_name, value in updates.items():
            if field_name != "items":
                setattr(quote, field_name, value)
        quote.apply_totals(totals)

        await self.db.commit()
        await self.db.refresh(quote)
        return quote

    async def set_status(self, quote_id: str, status) -> Quote:
        """Set any status value; transitions are not restricted."""
        status = _value(status)
        if status not in QUOTE_STATUSES:
            raise ValidationError(f"Invalid status '{status}'")

        quote = await self.get_quote(quote_id)
        previous = quote.status
        quote.status = status
        await self.db.commit()
        await self.db.refresh(quote)
        logger.info("Quote %s status %s -> %s", quote.quote_number, previous, status)
        return quote

    async def duplicate_quote(self, quote_id: str, created_by: Optional[str] = None) -> Quote:
        """Copy a quote as a new draft with a fresh number, version and no artifact."""
        original = await self.get_quote(quote_id)
        totals = compute_totals(
            original.items or [],
            discount=original.discount,
            discount_type=original.discount_type,
            include_vat=original.include_vat,
            vat_rate=original.vat_rate,
        )
        fields = {
            "client_id": original.client_id,
            "project_id": original.project_id,
            "linked_requirement_ids": list(original.linked_requirement_ids or []),
            "created_by": created_by or original.created_by,
            "business_info": dict(original.business_info or {}),
            "client_info": dict(original.client_info or {}),
            "title": original.title,
            "discount": original.discount,
            "discount_type": original.discount_type,
            "include_vat": original.include_vat,
            "vat_rate": original.vat_rate,
            "notes": original.notes,
            "terms": original.terms,
            "valid_until": original.valid_until,
            "status": QuoteStatus.draft.value,
        }
        source_number = original.quote_number
        duplicate = await self._insert(fields, totals)
        logger.info("Duplicated quote %s as %s", source_number, duplicate.quote_number)
        return duplicate

    async def delete_quote(self, quote_id: str) -> None:
        """Delete the record, then try to remove the remote artifact."""
        quote = await self.get_quote(quote_id)
        storage_id = quote.pdf_storage_id
        quote_number = quote.quote_number

        await self.db.delete(quote)
        await self.db.commit()
        logger.info("Deleted quote %s", quote_number)

        if storage_id:
            await self._discard_remote(storage_id, quote_number, quote_id)

    async def _discard_remote(self, storage_id: str, quote_number: str, quote_id: str) -> None:
        """Best-effort removal of a remote object; failures are only logged."""
        if self.storage is None:
            return
        try:
            await self.storage.delete("remote", storage_id)
        except (httpx.HTTPError, StorageError) as e:
            logger.warning(
                "Could not delete stored PDF %s of quote %s: %s", storage_id, quote_number, e,
                extra={"quote_id": quote_id, "strategy": "remote"},
            )

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    def _require_artifact_deps(self):
        if self.renderer is None or self.storage is None:
            raise RuntimeError("QuoteService needs a renderer and a storage chain for artifacts")

    async def render_artifact(self, quote_id: str, created_by: Optional[str] = None) -> RenderResult:
        """
        Render the quote as it is now, store the PDF and link it in the catalog.

        Render errors propagate and leave the quote unchanged. Storage
        failures only add warnings to the result. A remote object from an
        earlier artifact is removed once the new one is committed.
        """
        self._require_artifact_deps()
        quote = await self.get_quote(quote_id)
        snapshot = snapshot_from_quote(quote, self.profile)

        pdf = await self.renderer.render(snapshot)

        previous_storage_id = quote.pdf_storage_id
        outcome = await self.storage.store(pdf, f"quote-{quote.quote_number}.pdf", quote_id=quote.id)
        quote.pdf_locator = outcome.locator
        quote.pdf_storage_id = outcome.storage_id
        document = DocumentLinker(self.db).link(quote, outcome, len(pdf), uploaded_by=created_by)

        await self.db.commit()
        await self.db.refresh(quote)

        if previous_storage_id and previous_storage_id != outcome.storage_id:
            await self._discard_remote(previous_storage_id, quote.quote_number, quote.id)

        return RenderResult(
            quote_id=quote.id,
            locator=outcome.locator,
            storage_strategy=outcome.strategy,
            storage_id=outcome.storage_id,
            inline_payload=outcome.inline_payload,
            file_size=len(pdf),
            document_id=document.id,
            warnings=outcome.warnings,
        )

    def validate_upload(self, filename: Optional[str], content_type: Optional[str], data: bytes) -> None:
        """Reject oversized or non-PDF uploads before anything is written."""
        if len(data) > self.max_upload_bytes:
            raise PayloadTooLargeError(len(data), self.max_upload_bytes)
        if not data:
            raise ValidationError("Uploaded file is empty")

        is_pdf_name = PurePath(filename or "").suffix.lower() == ".pdf"
        is_pdf_mime = (content_type or "").split(";")[0].strip().lower() == PDF_MIME_TYPE
        if not (is_pdf_name or is_pdf_mime):
            raise ValidationError("Only PDF files can be attached to a quote")
        if not data.startswith(PDF_MAGIC):
            raise ValidationError("Uploaded file is not a valid PDF document")

    async def attach_external_pdf(
        self,
        quote_id: str,
        filename: Optional[str],
        content_type: Optional[str],
        data: bytes,
        uploaded_by: Optional[str] = None,
    ) -> RenderResult:
        """Store a manually prepared PDF as the quote's artifact."""
        self._require_artifact_deps()
        self.validate_upload(filename, content_type, data)
        quote = await self.get_quote(quote_id)

        previous_storage_id = quote.pdf_storage_id
        key = f"quote-{quote.quote_number}-upload-{uuid.uuid4().hex[:12]}.pdf"
        outcome = await self.storage.store(data, key, quote_id=quote.id)
        quote.pdf_locator = outcome.locator
        quote.pdf_storage_id = outcome.storage_id

        display_name = PurePath(filename).name[:255] if filename else None
        document = DocumentLinker(self.db).link(
            quote,
            outcome,
            len(data),
            file_name=display_name,
            description=f"PDF uploaded manually for quote {quote.quote_number}",
            uploaded_by=uploaded_by,
        )

        await self.db.commit()
        await self.db.refresh(quote)

        if previous_storage_id and previous_storage_id != outcome.storage_id:
            await self._discard_remote(previous_storage_id, quote.quote_number, quote.id)

        return RenderResult(
            quote_id=quote.id,
            locator=outcome.locator,
            storage_strategy=outcome.strategy,
            storage_id=outcome.storage_id,
            inline_payload=outcome.inline_payload,
            file_size=len(data),
            document_id=document.id,
            warnings=outcome.warnings,
        )
