"""
Quotes API - create, price, revise and render client quotes.
"""
from fastapi import APIRouter, File, Query, UploadFile, status
from typing import Optional

from quoteflow.api.deps import CurrentUserId, QuoteServiceDep
from quoteflow.schemas.quote import (
    GenerateFromProjectRequest,
    QuoteCreate,
    QuoteListResponse,
    QuoteResponse,
    QuoteStatus,
    QuoteStatusUpdate,
    QuoteUpdate,
    RenderResult,
)

router = APIRouter()


@router.post(
    "/clients/{client_id}/quotes",
    response_model=QuoteResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_quote(
    client_id: str,
    quote_data: QuoteCreate,
    service: QuoteServiceDep,
    current_user: CurrentUserId,
):
    """Create a quote from manual line items."""
    return await service.create_quote(client_id, quote_data, created_by=current_user)


@router.get("/clients/{client_id}/quotes", response_model=QuoteListResponse)
async def list_client_quotes(
    client_id: str,
    service: QuoteServiceDep,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200),
    status: Optional[QuoteStatus] = None,
):
    """List a client's quotes, newest first."""
    quotes, total = await service.list_quotes(
        client_id=client_id, status=status, page=page, page_size=page_size
    )
    return QuoteListResponse(items=quotes, total=total, page=page, page_size=page_size)


@router.post(
    "/projects/{project_id}/quotes",
    response_model=QuoteResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_quote_from_project(
    project_id: str,
    service: QuoteServiceDep,
    current_user: CurrentUserId,
    body: Optional[GenerateFromProjectRequest] = None,
):
    """Create the next quote version from a project's requirements."""
    requirement_ids = body.requirement_ids if body else None
    return await service.generate_from_project(
        project_id, requirement_ids=requirement_ids, created_by=current_user
    )


@router.get("/quotes", response_model=QuoteListResponse)
async def list_quotes(
    service: QuoteServiceDep,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200),
    client_id: Optional[str] = None,
    project_id: Optional[str] = None,
    status: Optional[QuoteStatus] = None,
):
    """List quotes with pagination and filtering."""
    quotes, total = await service.list_quotes(
        client_id=client_id,
        project_id=project_id,
        status=status,
        page=page,
        page_size=page_size,
    )
    return QuoteListResponse(items=quotes, total=total, page=page, page_size=page_size)


@router.get("/quotes/by-number/{quote_number}", response_model=QuoteResponse)
async def get_quote_by_number(quote_number: str, service: QuoteServiceDep):
    """Get a quote (any version) by its quote number."""
    return await service.get_quote_by_number(quote_number)


@router.get("/quotes/{quote_id}", response_model=QuoteResponse)
async def get_quote(quote_id: str, service: QuoteServiceDep):
    """Get a single quote by ID."""
    return await service.get_quote(quote_id)


@router.patch("/quotes/{quote_id}", response_model=QuoteResponse)
async def update_quote(quote_id: str, quote_data: QuoteUpdate, service: QuoteServiceDep):
    """Update a quote; totals are always recalculated."""
    return await service.update_quote(quote_id, quote_data)


@router.patch("/quotes/{quote_id}/status", response_model=QuoteResponse)
async def update_quote_status(quote_id: str, body: QuoteStatusUpdate, service: QuoteServiceDep):
    """Set the quote status."""
    return await service.set_status(quote_id, body.status)


@router.post(
    "/quotes/{quote_id}/duplicate",
    response_model=QuoteResponse,
    status_code=status.HTTP_201_CREATED,
)
async def duplicate_quote(quote_id: str, service: QuoteServiceDep, current_user: CurrentUserId):
    """Copy a quote as a new draft."""
    return await service.duplicate_quote(quote_id, created_by=current_user)


@router.post("/quotes/{quote_id}/pdf", response_model=RenderResult)
async def generate_quote_pdf(quote_id: str, service: QuoteServiceDep, current_user: CurrentUserId):
    """Render the quote PDF and store it."""
    return await service.render_artifact(quote_id, created_by=current_user)


@router.post("/quotes/{quote_id}/pdf/upload", response_model=RenderResult)
async def upload_quote_pdf(
    quote_id: str,
    service: QuoteServiceDep,
    current_user: CurrentUserId,
    file: UploadFile = File(...),
):
    """Attach an externally prepared PDF (max 10MB) to the quote."""
    # One byte over the limit is enough to reject
    data = await file.read(service.max_upload_bytes + 1)
    return await service.attach_external_pdf(
        quote_id,
        filename=file.filename,
        content_type=file.content_type,
        data=data,
        uploaded_by=current_user,
    )


@router.delete("/quotes/{quote_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quote(quote_id: str, service: QuoteServiceDep):
    """Delete a quote and, best effort, its stored PDF."""
    await service.delete_quote(quote_id)
