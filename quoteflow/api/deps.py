"""
FastAPI Dependencies

Provides dependency injection for database sessions, the acting user id,
and the long-lived pipeline collaborators (renderer, storage chain,
business profile).

Authentication is handled upstream; the caller identity arrives as an
X-User-Id header and is only recorded for audit.
"""

from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from quoteflow.config import settings
from quoteflow.database import get_db
from quoteflow.schemas.quote import BusinessProfile
from quoteflow.services.quote_pdf import QuoteRenderer
from quoteflow.services.quote_service import QuoteService
from quoteflow.services.storage import StorageStrategyChain

DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_current_user_id(
    x_user_id: Annotated[Optional[str], Header(max_length=64)] = None,
) -> Optional[str]:
    """Acting user id, if the gateway supplied one."""
    return x_user_id or None


CurrentUserId = Annotated[Optional[str], Depends(get_current_user_id)]


@lru_cache()
def get_business_profile() -> BusinessProfile:
    return BusinessProfile.from_settings(settings)


@lru_cache()
def get_renderer() -> QuoteRenderer:
    """Process-wide renderer; its worker pool bounds concurrent renders."""
    return QuoteRenderer.from_settings(settings)


@lru_cache()
def get_storage_chain() -> StorageStrategyChain:
    return StorageStrategyChain.from_settings(settings)


def get_quote_service(
    db: DbSession,
    profile: Annotated[BusinessProfile, Depends(get_business_profile)],
    renderer: Annotated[QuoteRenderer, Depends(get_renderer)],
    storage: Annotated[StorageStrategyChain, Depends(get_storage_chain)],
) -> QuoteService:
    return QuoteService(
        db,
        profile,
        renderer=renderer,
        storage=storage,
        max_upload_bytes=settings.MAX_UPLOAD_BYTES,
    )


QuoteServiceDep = Annotated[QuoteService, Depends(get_quote_service)]
