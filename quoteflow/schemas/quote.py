from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from enum import Enum
from typing import Literal, Optional


class QuoteStatus(str, Enum):
    draft = "draft"
    sent = "sent"
    viewed = "viewed"
    accepted = "accepted"
    rejected = "rejected"
    expired = "expired"


class DiscountType(str, Enum):
    percentage = "percentage"
    fixed = "fixed"


class BusinessInfo(BaseModel):
    """Business details printed on the quote header."""
    name: Optional[str] = None
    logo: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    tax_id: Optional[str] = None


class ClientInfo(BaseModel):
    """Client contact details frozen into the quote."""
    name: Optional[str] = None
    business_name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    tax_id: Optional[str] = None


class BusinessProfile(BaseModel):
    """
    Explicit business defaults handed to the quote service and renderer.

    Built once from settings (or by a caller) instead of being read from
    process-wide configuration inside the pipeline.
    """
    model_config = ConfigDict(frozen=True)

    info: BusinessInfo = BusinessInfo()
    currency_symbol: str = "₪"
    default_vat_rate: float = Field(17.0, ge=0)
    hourly_rate: float = Field(0.0, ge=0)
    language: str = "en"
    direction: Literal["ltr", "rtl"] = "ltr"

    @classmethod
    def from_settings(cls, settings) -> "BusinessProfile":
        return cls(
            info=BusinessInfo(
                name=settings.BUSINESS_NAME,
                logo=settings.BUSINESS_LOGO,
                address=settings.BUSINESS_ADDRESS,
                phone=settings.BUSINESS_PHONE,
                email=settings.BUSINESS_EMAIL,
                website=settings.BUSINESS_WEBSITE,
                tax_id=settings.BUSINESS_TAX_ID,
            ),
            currency_symbol=settings.CURRENCY_SYMBOL,
            default_vat_rate=settings.DEFAULT_VAT_RATE,
            hourly_rate=settings.HOURLY_RATE,
            language=settings.DOCUMENT_LANGUAGE,
            direction=settings.DOCUMENT_DIRECTION,
        )


class QuoteLineItem(BaseModel):
    """Schema for quote line item. total_price is always recomputed."""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    quantity: float = Field(1, ge=1)
    unit_price: float = Field(..., ge=0)
    total_price: Optional[float] = None


class PricingOptions(BaseModel):
    discount: float = Field(0, ge=0)
    discount_type: DiscountType = DiscountType.fixed
    include_vat: bool = True
    vat_rate: Optional[float] = Field(None, ge=0, le=100)


class QuoteCreate(PricingOptions):
    """Schema for creating a quote from manual line items."""
    title: Optional[str] = Field(None, max_length=255)
    items: list[QuoteLineItem] = []
    notes: Optional[str] = None
    terms: Optional[str] = None
    valid_until: Optional[date] = None
    business_info: Optional[BusinessInfo] = None


class QuoteUpdate(BaseModel):
    """Schema for updating a quote (all fields optional)."""
    title: Optional[str] = Field(None, max_length=255)
    items: Optional[list[QuoteLineItem]] = None
    discount: Optional[float] = Field(None, ge=0)
    discount_type: Optional[DiscountType] = None
    include_vat: Optional[bool] = None
    vat_rate: Optional[float] = Field(None, ge=0, le=100)
    notes: Optional[str] = None
    terms: Optional[str] = None
    valid_until: Optional[date] = None


class QuoteStatusUpdate(BaseModel):
    status: QuoteStatus


class GenerateFromProjectRequest(BaseModel):
    """Explicit requirement ids; when omitted, all approved requirements are used."""
    requirement_ids: Optional[list[str]] = None


class QuoteResponse(BaseModel):
    """Schema for quote response."""
    id: str
    quote_number: str
    version: int
    client_id: str
    project_id: Optional[str] = None
    linked_requirement_ids: list[str] = []
    created_by: Optional[str] = None
    business_info: BusinessInfo
    client_info: ClientInfo
    title: str
    items: list[QuoteLineItem]
    discount: float
    discount_type: DiscountType
    include_vat: bool
    vat_rate: float
    subtotal: float
    vat_amount: float
    total: float
    notes: Optional[str] = None
    terms: Optional[str] = None
    valid_until: Optional[date] = None
    status: QuoteStatus
    pdf_locator: Optional[str] = None
    pdf_storage_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class QuoteListResponse(BaseModel):
    """Paginated quote list response."""
    items: list[QuoteResponse]
    total: int
    page: int
    page_size: int


class QuoteSnapshot(BaseModel):
    """
    Everything the renderer needs, resolved and frozen.

    Rendering only ever sees this value, never the live Quote row, so the
    artifact reflects the quote as it was when the snapshot was taken.
    """
    model_config = ConfigDict(frozen=True)

    quote_number: str
    version: int = 1
    title: str
    business_info: BusinessInfo
    client_info: ClientInfo
    items: tuple[QuoteLineItem, ...]
    discount: float = 0
    discount_type: DiscountType = DiscountType.fixed
    discount_amount: float = 0
    include_vat: bool = True
    vat_rate: float = 17.0
    subtotal: float
    vat_amount: float
    total: float
    notes: Optional[str] = None
    terms: Optional[str] = None
    valid_until: Optional[date] = None
    issued_on: date
    language: str = "en"
    direction: Literal["ltr", "rtl"] = "ltr"


class StorageDegradedWarning(BaseModel):
    """A storage strategy failed but the artifact was still stored elsewhere."""
    strategy: str
    message: str


class RenderResult(BaseModel):
    """Result of rendering and storing a quote PDF."""
    quote_id: str
    locator: str
    storage_strategy: str
    storage_id: Optional[str] = None
    inline_payload: str
    file_size: int
    document_id: Optional[str] = None
    warnings: list[StorageDegradedWarning] = []
