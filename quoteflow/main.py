"""
Quote Pipeline API - Main Application
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from quoteflow import __version__
from quoteflow.api.deps import get_renderer
from quoteflow.api.v2.router import api_router
from quoteflow.config import settings
from quoteflow.database import init_db
from quoteflow.exceptions import QuoteFlowException, create_exception_handlers
from quoteflow.middleware.correlation import CorrelationIdMiddleware, CorrelationLogFilter
# Import all models to register them with SQLAlchemy metadata before init_db()
from quoteflow.models import Client, Project, Requirement, Quote, QuoteSequence, Document  # noqa: F401

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s",
)
for _handler in logging.getLogger().handlers:
    _handler.addFilter(CorrelationLogFilter())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting quote pipeline API...")
    logger.info("Environment: %s", settings.ENVIRONMENT)
    await init_db()
    logger.info("Database initialized")
    yield
    get_renderer().shutdown()
    logger.info("Shutting down quote pipeline API...")


app = FastAPI(
    title="Quote Pipeline API",
    description="Quote generation, pricing and PDF rendering",
    version=__version__,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None,
    lifespan=lifespan,
)

allowed_origins = [
    settings.FRONTEND_URL,
    "http://localhost:5173",
    "http://localhost:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

handlers = create_exception_handlers(allowed_origins)
app.add_exception_handler(QuoteFlowException, handlers["quoteflow"])
app.add_exception_handler(StarletteHTTPException, handlers["http"])
app.add_exception_handler(RequestValidationError, handlers["validation"])
app.add_exception_handler(Exception, handlers["generic"])

app.include_router(api_router, prefix="/api/v2")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__,
        "environment": settings.ENVIRONMENT,
        "object_storage": settings.object_storage_configured,
        "local_storage": not settings.SERVERLESS,
    }


# For running with uvicorn directly (development only)
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "quoteflow.main:app",
        host="0.0.0.0",
        port=5001,
        reload=settings.DEBUG,
    )
