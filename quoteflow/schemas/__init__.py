from quoteflow.schemas.quote import (
    BusinessInfo,
    BusinessProfile,
    ClientInfo,
    DiscountType,
    GenerateFromProjectRequest,
    PricingOptions,
    QuoteCreate,
    QuoteLineItem,
    QuoteListResponse,
    QuoteResponse,
    QuoteSnapshot,
    QuoteStatus,
    QuoteStatusUpdate,
    QuoteUpdate,
    RenderResult,
    StorageDegradedWarning,
)
